"""
Lifecycle states of a review record.

    new -> learning -> review -> graduated
              ^__________|__________|   (any incorrect answer)

Graduation is not terminal: a graduated card answered incorrectly goes back to
learning. A card graduates once it reaches STUDY_GRADUATION_REPETITIONS
consecutive correct answers.
"""

from . import conf


NEW = 'new'
LEARNING = 'learning'
REVIEW = 'review'
GRADUATED = 'graduated'

STATUSES = (NEW, LEARNING, REVIEW, GRADUATED)

# Consecutive correct answers needed to leave learning for review
REVIEW_REPETITIONS = 2


def is_graduating(repetitions, graduation_repetitions=None):
    if graduation_repetitions is None:
        graduation_repetitions = conf.graduation_repetitions()
    return repetitions >= graduation_repetitions


def next_status(prior_status, correct, repetitions, interval_days, graduation_repetitions=None):
    """
    Return the status that follows a review.

    ``repetitions`` and ``interval_days`` are the values *after* the scheduling
    update. Graduation is keyed on repetitions, not on ``interval_days``.
    """
    if prior_status not in STATUSES:
        raise ValueError(f"Unknown review status: {prior_status!r}")

    if not correct:
        return LEARNING

    if prior_status == NEW:
        return LEARNING

    if prior_status == GRADUATED:
        return GRADUATED

    if is_graduating(repetitions, graduation_repetitions):
        return GRADUATED

    if prior_status == LEARNING:
        return REVIEW if repetitions >= REVIEW_REPETITIONS else LEARNING

    return REVIEW
