"""
SM-2 Review Scheduler.

Computes the next review date of a generated card from the learner's grade.

Grade -> SM-2 quality:
    again - 0 (resets the repetition streak)
    hard  - 3
    good  - 4
    easy  - 5
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

MIN_EASINESS = 1.3
DEFAULT_EASINESS = 2.5
EASY_BONUS = 1.3
HARD_FACTOR = 1.2
SECOND_INTERVAL = 6


class ReviewGrade(str, Enum):
    AGAIN = "again"
    HARD = "hard"
    GOOD = "good"
    EASY = "easy"


REVIEW_QUALITY: dict[ReviewGrade, int] = {
    ReviewGrade.AGAIN: 0,
    ReviewGrade.HARD: 3,
    ReviewGrade.GOOD: 4,
    ReviewGrade.EASY: 5,
}


@dataclass
class CardState:
    """Scheduling state of a card at the moment it was reviewed."""

    grade: ReviewGrade | str
    easiness: float
    interval: float
    reps: float
    reviewed_at: datetime | str


@dataclass
class ReviewSchedule:
    next_due_at: datetime
    easiness: float
    interval: int
    reps: int


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _finite(value: float, fallback: float) -> float:
    try:
        return value if math.isfinite(value) else fallback
    except TypeError:
        return fallback


def _sm2_adjustment(quality: int, easiness: float) -> float:
    delta = 0.1 - (5 - quality) * (0.08 + (5 - quality) * 0.02)
    return max(MIN_EASINESS, easiness + delta)


def _to_datetime(value: datetime | str) -> datetime:
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        raise ValueError("Invalid reviewed_at value; expected a valid date") from None


def schedule_review(state: CardState) -> ReviewSchedule:
    """
    Compute the next review for a card.

    Raises:
        ValueError: Unsupported grade or unparseable reviewed_at
    """
    try:
        grade = ReviewGrade(state.grade)
    except ValueError:
        raise ValueError(f"Unsupported grade: {state.grade}") from None

    quality = REVIEW_QUALITY[grade]
    easiness = _sm2_adjustment(quality, _finite(state.easiness, DEFAULT_EASINESS))
    current_interval = _finite(state.interval, 0)
    reps = int(_finite(state.reps, 0))

    if grade is ReviewGrade.AGAIN:
        reps = 0
        interval = 1
    else:
        reps += 1
        safe_interval = current_interval if current_interval > 0 else 1

        if reps == 1:
            interval = 1
        elif reps == 2:
            base = SECOND_INTERVAL * EASY_BONUS if grade is ReviewGrade.EASY else SECOND_INTERVAL
            interval = max(1, _round_half_up(base))
        elif grade is ReviewGrade.HARD:
            interval = max(1, _round_half_up(safe_interval * HARD_FACTOR))
        elif grade is ReviewGrade.EASY:
            interval = max(1, _round_half_up(safe_interval * easiness * EASY_BONUS))
        else:
            interval = max(1, _round_half_up(safe_interval * easiness))

    reviewed_at = _to_datetime(state.reviewed_at)
    return ReviewSchedule(
        next_due_at=reviewed_at + timedelta(days=interval),
        easiness=easiness,
        interval=interval,
        reps=reps,
    )
