"""
Player progression: unlocked levels, tokens, runtime settings and
post-session bookkeeping.
"""

import logging
from datetime import datetime
from typing import Any

from ulid import ULID

from kamjai.domain.constants import (
    LEVEL_COMPLETION_TOKENS,
    MAX_LEVEL,
    SCORE_PER_CORRECT,
    UNLOCK_ALL_MIN_TOKENS,
)
from kamjai.domain.minigame.models import MiniGameResults, SessionStats
from kamjai.domain.ports import ProgressStore
from kamjai.domain.progress.models import RuntimeSettings, UserProfileProgress

logger = logging.getLogger(__name__)


def normalize_unlocked_levels(raw: Any) -> list[int]:
    """Valid level ids in [1, MAX_LEVEL], deduplicated and sorted; level 1 always present."""
    if not isinstance(raw, (list, tuple, set)):
        return [1]
    levels: set[int] = {1}
    for value in raw:
        if isinstance(value, bool):
            continue
        if isinstance(value, str):
            value = value.strip()
            if not value.isdigit():
                continue
            value = int(value)
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        if isinstance(value, int) and 1 <= value <= MAX_LEVEL:
            levels.add(value)
    return sorted(levels)


def voice_input_allowed(settings: RuntimeSettings) -> bool:
    """Voice needs the mode enabled and public (quiet) mode off."""
    return settings.voice_mode_enabled and not settings.public_mode_enabled


def generate_session_id() -> str:
    return f"session_{ULID()}"


def session_stats_from_results(user_id: str, results: MiniGameResults, now: datetime) -> SessionStats:
    return SessionStats(
        id=generate_session_id(),
        user_id=user_id,
        level_id=results.level_id,
        score=results.correct_count * SCORE_PER_CORRECT,
        words_learned=results.used_vocab_count,
        accuracy=results.accuracy,
        time_seconds=max(1, results.elapsed_ms // 1000),
        created_at=now,
    )


class ProgressionService:
    """Application service over the profile side of the ProgressStore."""

    def __init__(self, store: ProgressStore):
        self._store = store

    async def ensure_profile(self, user_id: str) -> UserProfileProgress:
        """Return the user's profile, creating a fresh one on first access."""
        profile = await self._store.get_profile(user_id)
        if profile is None:
            profile = UserProfileProgress(user_id=user_id)
            await self._store.upsert_profile(profile)
            logger.info(f"Created profile for {user_id}")
            return profile
        profile.unlocked_levels = normalize_unlocked_levels(profile.unlocked_levels)
        return profile

    async def update_settings(self, user_id: str, settings: RuntimeSettings) -> UserProfileProgress:
        profile = await self.ensure_profile(user_id)
        profile.settings = settings
        await self._store.upsert_profile(profile)
        return profile

    async def award_level_completion(self, user_id: str, level_id: int) -> UserProfileProgress:
        profile = await self.ensure_profile(user_id)
        next_level = min(MAX_LEVEL, level_id + 1)
        profile.unlocked_levels = normalize_unlocked_levels(
            profile.unlocked_levels + [level_id, next_level]
        )
        profile.tokens += LEVEL_COMPLETION_TOKENS
        await self._store.upsert_profile(profile)
        logger.info(f"{user_id} completed level {level_id}; unlocked {next_level}")
        return profile

    async def unlock_all(self, user_id: str) -> UserProfileProgress:
        profile = await self.ensure_profile(user_id)
        profile.unlocked_levels = list(range(1, MAX_LEVEL + 1))
        profile.tokens = max(profile.tokens, UNLOCK_ALL_MIN_TOKENS)
        await self._store.upsert_profile(profile)
        return profile

    async def record_session_result(
        self,
        user_id: str,
        results: MiniGameResults,
        now: datetime,
        story_mode: bool = False,
    ) -> SessionStats:
        """
        Persist a finished session and, in story mode, award level completion.
        """
        stats = session_stats_from_results(user_id, results, now)
        await self._store.record_session(stats)
        if story_mode:
            await self.award_level_completion(user_id, results.level_id)
        return stats
