"""
Leitner-style spaced repetition scheduler.

Items live in boxes 1-5; each box maps to a base review interval. This is a
pure computation module with no I/O.

Known consistency gap: callers read a record, call update_progress and write
it back without a transaction. Two devices rating the same item at once
race, and the last write wins.
"""

import math
from dataclasses import replace
from datetime import datetime, timedelta

from kamjai.domain.constants import (
    BOX_INTERVAL_DAYS,
    EASY_INTERVAL_SCALE,
    HARD_DEMOTION_STREAK,
    HARD_INTERVAL_SCALE,
    MAX_BOX,
    MIN_BOX,
    PROBLEM_WORD_THRESHOLD,
)
from kamjai.domain.progress.models import Rating, ReviewProgressRecord


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp_box(box: int) -> int:
    return max(MIN_BOX, min(MAX_BOX, box))


def next_box(current_box: int, rating: Rating, incorrect_streak: int) -> int:
    """
    Box after a rating.

    "hard" only demotes when the incorrect streak (after this rating) is at
    least 2; otherwise it holds the box.
    """
    box = clamp_box(current_box)
    if rating == Rating.AGAIN:
        return MIN_BOX
    if rating == Rating.HARD:
        if incorrect_streak >= HARD_DEMOTION_STREAK:
            return max(MIN_BOX, box - 1)
        return box
    if rating == Rating.GOOD:
        return min(MAX_BOX, box + 1)
    return min(MAX_BOX, box + 2)


def interval_days(box: int, rating: Rating) -> int:
    """Days until the next review for a box, scaled by the rating."""
    base = BOX_INTERVAL_DAYS[clamp_box(box) - 1]
    if rating == Rating.HARD:
        return max(1, _round_half_up(base * HARD_INTERVAL_SCALE))
    if rating == Rating.EASY:
        return _round_half_up(base * EASY_INTERVAL_SCALE)
    return base


def new_progress_record(user_id: str, vocabulary_id: str) -> ReviewProgressRecord:
    """Record for a first encounter: box 1, no history."""
    return ReviewProgressRecord(user_id=user_id, vocabulary_id=vocabulary_id, box=MIN_BOX)


def update_progress(
    record: ReviewProgressRecord,
    rating: Rating,
    now: datetime,
) -> ReviewProgressRecord:
    """
    Apply one rating to a freshly read record.

    Args:
        record: Current progress; must come straight from the store.
        rating: The learner's recall grade.
        now: Review timestamp.

    Returns:
        The updated record. The input is left untouched.
    """
    missed = rating == Rating.AGAIN
    streak = record.incorrect_streak + 1 if missed else 0
    box = next_box(record.box, rating, streak)
    times_incorrect = record.times_incorrect + 1 if missed else record.times_incorrect
    times_correct = record.times_correct if missed else record.times_correct + 1

    return replace(
        record,
        box=box,
        times_correct=times_correct,
        times_incorrect=times_incorrect,
        incorrect_streak=streak,
        last_reviewed=now,
        next_review=now + timedelta(days=interval_days(box, rating)),
        # Sticky: never cleared here
        problem_word=record.problem_word or times_incorrect >= PROBLEM_WORD_THRESHOLD,
    )
