"""In-memory ProgressStore, used when no progress file is configured."""

from copy import deepcopy
from datetime import datetime

from kamjai.domain.minigame.models import SessionStats
from kamjai.domain.ports import ProgressStore
from kamjai.domain.progress.models import ReviewProgressRecord, ReviewSessionLog, UserProfileProgress


class InMemoryProgressStore(ProgressStore):
    def __init__(self):
        self.reviews: dict[tuple[str, str], ReviewProgressRecord] = {}
        self.profiles: dict[str, UserProfileProgress] = {}
        self.sessions: list[SessionStats] = []
        self.review_logs: list[ReviewSessionLog] = []

    async def get_review(self, user_id: str, vocabulary_id: str) -> ReviewProgressRecord | None:
        return self.reviews.get((user_id, vocabulary_id))

    async def upsert_review(self, record: ReviewProgressRecord) -> None:
        self.reviews[(record.user_id, record.vocabulary_id)] = record

    async def list_reviews(self, user_id: str) -> list[ReviewProgressRecord]:
        return [r for (uid, _), r in self.reviews.items() if uid == user_id]

    async def get_profile(self, user_id: str) -> UserProfileProgress | None:
        # Copies: changes reach the store only through upsert_profile
        profile = self.profiles.get(user_id)
        return deepcopy(profile) if profile is not None else None

    async def upsert_profile(self, profile: UserProfileProgress) -> None:
        self.profiles[profile.user_id] = deepcopy(profile)

    async def record_session(self, stats: SessionStats) -> None:
        self.sessions.append(stats)

    async def log_review_session(self, log: ReviewSessionLog) -> None:
        self.review_logs.append(log)

    async def list_review_sessions(self, user_id: str, since: datetime) -> list[ReviewSessionLog]:
        return [log for log in self.review_logs if log.user_id == user_id and log.created_at >= since]
