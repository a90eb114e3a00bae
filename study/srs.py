"""
SM-2 scheduling for study cards.

A review is rated 0-5. Ratings of 3 and up keep the card's run of correct
answers going and stretch its interval (1 day, 6 days, then the previous
interval times the ease factor). Lower ratings restart the run at one day.
The ease factor moves with every rating and never drops below 1.3.

The caller passes ``now`` in, so results depend only on the arguments.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Tuple

from .exceptions import InvalidRating


# Ratings
QUALITY_BLACKOUT = 0       # Nothing recalled
QUALITY_WRONG_EASY = 1     # Wrong, answer felt obvious afterwards
QUALITY_WRONG_HARD = 2     # Wrong, recognised once shown
QUALITY_HARD = 3           # Right after a struggle
QUALITY_GOOD = 4           # Right after a pause
QUALITY_EASY = 5           # Right immediately

MIN_QUALITY = QUALITY_BLACKOUT
MAX_QUALITY = QUALITY_EASY
PASSING_QUALITY = QUALITY_HARD

# Scheduling
MIN_EASE_FACTOR = 1.3
DEFAULT_EASE_FACTOR = 2.5
FIRST_INTERVAL = 1         # days, after the first correct answer
SECOND_INTERVAL = 6        # days, after the second
FAILED_INTERVAL = 1        # days, after any wrong answer


@dataclass(frozen=True)
class ReviewResult:
    """Scheduling state after one review."""
    repetitions: int
    ease_factor: float
    interval_days: int
    next_due_at: datetime


def validate_quality(quality) -> int:
    """Return ``quality`` if it is an integer rating in 0-5, else raise InvalidRating."""
    if isinstance(quality, bool) or not isinstance(quality, int):
        raise InvalidRating(quality)
    if quality < MIN_QUALITY or quality > MAX_QUALITY:
        raise InvalidRating(quality)
    return quality


def is_correct(quality: int) -> bool:
    return quality >= PASSING_QUALITY


def calculate_ease_factor(current_ease: float, quality: int) -> float:
    """
    Ease factor after a rating, floored at MIN_EASE_FACTOR.

        EF' = EF + 0.1 - (5 - q) * (0.08 + (5 - q) * 0.02)

    A 5 adds 0.1, a 4 leaves it unchanged, anything lower takes some off.
    """
    miss = MAX_QUALITY - quality
    return max(MIN_EASE_FACTOR, current_ease + 0.1 - miss * (0.08 + miss * 0.02))


def calculate_interval(
    current_interval: int,
    repetitions: int,
    ease_factor: float,
    quality: int
) -> Tuple[int, int]:
    """
    Return ``(interval_days, repetitions)`` after a rating.

    ``ease_factor`` is the value before this review. Intervals past the
    second step are rounded half up and never shorter than one day.
    """
    if not is_correct(quality):
        return (FAILED_INTERVAL, 0)

    if repetitions == 0:
        interval = FIRST_INTERVAL
    elif repetitions == 1:
        interval = SECOND_INTERVAL
    else:
        interval = math.floor(current_interval * ease_factor + 0.5)

    return (max(FIRST_INTERVAL, int(interval)), repetitions + 1)


def advance(
    quality: int,
    repetitions: int,
    ease_factor: float,
    interval_days: int,
    now: datetime,
) -> ReviewResult:
    """
    Schedule the next review of a card.

    Defined for every quality in 0-5, repetitions >= 0, ease_factor >= 1.3
    and interval_days >= 0. Other ratings raise InvalidRating.

    Args:
        quality: Rating given for this review
        repetitions: Correct answers in a row so far
        ease_factor: Ease factor going into the review
        interval_days: Current interval in days
        now: When the review happened
    """
    validate_quality(quality)

    interval, new_repetitions = calculate_interval(interval_days, repetitions, ease_factor, quality)

    return ReviewResult(
        repetitions=new_repetitions,
        ease_factor=calculate_ease_factor(ease_factor, quality),
        interval_days=interval,
        next_due_at=now + timedelta(days=interval),
    )
