"""
Review queue and rating orchestration.

Selects due items (leeches first), applies ratings through the scheduler,
and tracks daily review streaks. Depends on the ProgressStore port only.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Literal

from kamjai.application.srs.scheduler import new_progress_record, update_progress
from kamjai.domain.constants import (
    DEFAULT_DAILY_REVIEW_TARGET,
    DEFAULT_REVIEW_QUEUE_LIMIT,
    DEFAULT_REVIEW_SESSION_SIZE,
    DEFAULT_STREAK_WINDOW_DAYS,
    LEECH_STREAK,
)
from kamjai.domain.errors import ProgressStoreError
from kamjai.domain.ports import ProgressStore
from kamjai.domain.progress.models import Rating, ReviewProgressRecord, ReviewSessionLog

logger = logging.getLogger(__name__)

ReviewMode = Literal["all", "leech"]

RATING_POINTS: dict[Rating, int] = {
    Rating.AGAIN: 0,
    Rating.HARD: 4,
    Rating.GOOD: 8,
    Rating.EASY: 12,
}


@dataclass(frozen=True)
class RatingOutcome:
    record: ReviewProgressRecord
    points: int
    persisted: bool


@dataclass
class ReviewOverview:
    due: list[ReviewProgressRecord]
    leeches: list[ReviewProgressRecord]
    today_reviews: int
    daily_target: int
    current_streak: int


# ---------- Queue selection ----------


def is_leech(record: ReviewProgressRecord) -> bool:
    return record.problem_word or record.incorrect_streak >= LEECH_STREAK


def _due_sort_key(record: ReviewProgressRecord) -> tuple:
    # Problem words, then longer streaks, then oldest due date (unset first), then lowest box
    due_key = (0, 0.0) if record.next_review is None else (1, record.next_review.timestamp())
    return (not record.problem_word, -record.incorrect_streak, due_key, record.box)


def select_due(
    records: Iterable[ReviewProgressRecord],
    now: datetime,
    limit: int = DEFAULT_REVIEW_QUEUE_LIMIT,
) -> list[ReviewProgressRecord]:
    due = [r for r in records if r.next_review is None or r.next_review <= now]
    due.sort(key=_due_sort_key)
    return due[:limit]


def build_review_queue(
    records: Iterable[ReviewProgressRecord],
    now: datetime,
    mode: ReviewMode = "all",
    size: int = DEFAULT_REVIEW_SESSION_SIZE,
    limit: int = DEFAULT_REVIEW_QUEUE_LIMIT,
) -> list[ReviewProgressRecord]:
    due = select_due(records, now, limit)
    if mode == "leech":
        due = [r for r in due if is_leech(r)]
    return due[:size]


def compute_daily_streak(
    logs: Iterable[ReviewSessionLog],
    today: date,
    window_days: int = DEFAULT_STREAK_WINDOW_DAYS,
) -> int:
    """Consecutive days, ending today, with at least one reviewed item."""
    per_day: dict[date, int] = {}
    for log in logs:
        day = log.created_at.date()
        per_day[day] = per_day.get(day, 0) + log.reviewed_count

    streak = 0
    for offset in range(window_days):
        if per_day.get(today - timedelta(days=offset), 0) > 0:
            streak += 1
        else:
            break
    return streak


# ---------- Service ----------


class ReviewService:
    """
    Application service for rating items and building review sessions.

    Follows Dependency Inversion: depends on the ProgressStore abstraction,
    not concrete adapter implementations.
    """

    def __init__(
        self,
        store: ProgressStore,
        queue_limit: int = DEFAULT_REVIEW_QUEUE_LIMIT,
        session_size: int = DEFAULT_REVIEW_SESSION_SIZE,
        daily_target: int = DEFAULT_DAILY_REVIEW_TARGET,
        streak_window_days: int = DEFAULT_STREAK_WINDOW_DAYS,
    ):
        self._store = store
        self.queue_limit = queue_limit
        self.session_size = session_size
        self.daily_target = daily_target
        self.streak_window_days = streak_window_days

    async def rate(
        self,
        user_id: str,
        vocabulary_id: str,
        rating: Rating,
        now: datetime,
    ) -> RatingOutcome:
        """
        Read the record, apply the rating and write it back.

        Read failures propagate: scheduling from a guessed record would
        overwrite real progress. Write failures are logged and reported via
        persisted=False; retrying is the caller's decision.
        """
        current = await self._store.get_review(user_id, vocabulary_id)
        if current is None:
            current = new_progress_record(user_id, vocabulary_id)

        updated = update_progress(current, rating, now)
        persisted = True
        try:
            await self._store.upsert_review(updated)
        except ProgressStoreError as e:
            logger.warning(f"Failed to persist review for {user_id}/{vocabulary_id}: {e}")
            persisted = False

        if updated.problem_word and not current.problem_word:
            logger.info(f"{vocabulary_id} flagged as problem word for {user_id}")

        return RatingOutcome(record=updated, points=RATING_POINTS[rating], persisted=persisted)

    async def due_queue(
        self,
        user_id: str,
        now: datetime,
        mode: ReviewMode = "all",
    ) -> list[ReviewProgressRecord]:
        records = await self._store.list_reviews(user_id)
        return build_review_queue(records, now, mode, self.session_size, self.queue_limit)

    async def overview(self, user_id: str, now: datetime) -> ReviewOverview:
        records = await self._store.list_reviews(user_id)
        due = select_due(records, now, self.queue_limit)
        since = now - timedelta(days=self.streak_window_days)
        logs = await self._store.list_review_sessions(user_id, since)

        today = now.date()
        today_reviews = sum(log.reviewed_count for log in logs if log.created_at.date() == today)
        target = min(self.daily_target, len(due)) if due else self.daily_target

        return ReviewOverview(
            due=due,
            leeches=[r for r in due if is_leech(r)],
            today_reviews=today_reviews,
            daily_target=target,
            current_streak=compute_daily_streak(logs, today, self.streak_window_days),
        )

    async def log_session(self, user_id: str, reviewed_count: int, now: datetime) -> None:
        await self._store.log_review_session(
            ReviewSessionLog(user_id=user_id, reviewed_count=reviewed_count, created_at=now)
        )

    async def run_session(
        self,
        user_id: str,
        ratings: Iterable[Rating],
        now: datetime,
        mode: ReviewMode = "all",
    ) -> "ReviewSession":
        """Rate the due queue in order. Ratings past the end of the queue are ignored."""
        session = ReviewSession(self, user_id, await self.due_queue(user_id, now, mode))
        for rating in ratings:
            if session.is_finished:
                break
            await session.rate(rating, now)
        await session.end(now)
        return session


@dataclass
class ReviewSession:
    """
    One pass over a review queue.

    Tracks position and points; ratings go through the ReviewService.
    """

    service: ReviewService
    user_id: str
    queue: list[ReviewProgressRecord]
    index: int = 0
    score: int = 0
    outcomes: list[RatingOutcome] = field(default_factory=list)

    @property
    def current(self) -> ReviewProgressRecord | None:
        if self.index < len(self.queue):
            return self.queue[self.index]
        return None

    @property
    def is_finished(self) -> bool:
        return self.current is None

    async def rate(self, rating: Rating, now: datetime) -> RatingOutcome | None:
        item = self.current
        if item is None:
            return None
        outcome = await self.service.rate(self.user_id, item.vocabulary_id, rating, now)
        self.outcomes.append(outcome)
        self.score += outcome.points
        self.index += 1
        if self.is_finished:
            await self.service.log_session(self.user_id, len(self.outcomes), now)
        return outcome

    async def end(self, now: datetime) -> None:
        # A finished queue was already logged by rate()
        if self.outcomes and not self.is_finished:
            await self.service.log_session(self.user_id, len(self.outcomes), now)
