"""Errors raised by the scheduling engine."""


class StudyError(Exception):
    """Base class for scheduling engine errors."""
    retryable = False


class InvalidRating(StudyError, ValueError):
    """Quality rating outside the 0-5 range."""

    def __init__(self, quality):
        self.quality = quality
        super().__init__(f"Quality must be between 0 and 5, got {quality!r}")


class RecordNotFound(StudyError, LookupError):
    """The user never enrolled the card (or the card does not exist)."""

    def __init__(self, user_id, card_id):
        self.user_id = user_id
        self.card_id = card_id
        super().__init__(f"No review record for user {user_id} and card {card_id}")


class StoreUnavailable(StudyError):
    """The backing store failed or timed out. Retry with backoff."""
    retryable = True


class WriteConflict(StudyError):
    """The record changed between read and write. Re-read and resubmit."""
    retryable = True

    def __init__(self, record_id, expected_version):
        self.record_id = record_id
        self.expected_version = expected_version
        super().__init__(
            f"Review record {record_id} was modified concurrently "
            f"(expected version {expected_version})"
        )
