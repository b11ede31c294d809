"""
Domain models for review scheduling and player progression.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class Rating(str, Enum):
    """The only recall grades the scheduler understands."""

    AGAIN = "again"
    HARD = "hard"
    GOOD = "good"
    EASY = "easy"


@dataclass(frozen=True)
class ReviewProgressRecord:
    """
    Review progress for one (user, vocabulary item) pair.

    Attributes:
        user_id: Owner of the record.
        vocabulary_id: The item being reviewed.
        box: Retention tier in [1, 5]; selects the base interval.
        times_correct: Ratings other than "again".
        times_incorrect: "again" ratings.
        incorrect_streak: Consecutive "again" ratings, reset by any other rating.
        last_reviewed: When the last rating was applied.
        next_review: When the item is due again (None means due now).
        problem_word: Sticky leech flag.
    """

    user_id: str
    vocabulary_id: str
    box: int = 1
    times_correct: int = 0
    times_incorrect: int = 0
    incorrect_streak: int = 0
    last_reviewed: datetime | None = None
    next_review: datetime | None = None
    problem_word: bool = False


@dataclass(frozen=True)
class ReviewSessionLog:
    user_id: str
    reviewed_count: int
    created_at: datetime


@dataclass(frozen=True)
class RuntimeSettings:
    voice_mode_enabled: bool = True
    public_mode_enabled: bool = False
    show_romanization: bool = True
    show_english_meaning: bool = False

    @classmethod
    def from_raw(cls, raw: Any) -> "RuntimeSettings":
        """Build settings from an untrusted mapping, keeping defaults for bad values."""
        default = cls()
        if not isinstance(raw, dict):
            return default

        def pick(key: str) -> bool:
            value = raw.get(key)
            return value if isinstance(value, bool) else getattr(default, key)

        return cls(
            voice_mode_enabled=pick("voice_mode_enabled"),
            public_mode_enabled=pick("public_mode_enabled"),
            show_romanization=pick("show_romanization"),
            show_english_meaning=pick("show_english_meaning"),
        )

    def to_dict(self) -> dict[str, bool]:
        return {
            "voice_mode_enabled": self.voice_mode_enabled,
            "public_mode_enabled": self.public_mode_enabled,
            "show_romanization": self.show_romanization,
            "show_english_meaning": self.show_english_meaning,
        }


@dataclass
class UserProfileProgress:
    """Aggregate unlock state for a user."""

    user_id: str
    tokens: int = 0
    unlocked_levels: list[int] = field(default_factory=lambda: [1])
    unlocked_cosmetics: list[str] = field(default_factory=list)
    settings: RuntimeSettings = field(default_factory=RuntimeSettings)
