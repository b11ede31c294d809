"""
Ports (interfaces) for the engine's external collaborators.

These define the contract that infrastructure adapters must implement.
Application services depend on these abstractions, not concrete implementations.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from .minigame.models import LevelSceneMeta, SessionStats, VocabularyItem
from .progress.models import ReviewProgressRecord, ReviewSessionLog, UserProfileProgress


class VocabularyRepository(ABC):
    """
    Port for reading level content.

    Implementations:
        - YamlVocabularyRepository: Reads a YAML content file.
    """

    @abstractmethod
    async def get_level_vocab(self, level_id: int, limit: int) -> list[VocabularyItem]:
        """
        Fetch the ordered vocabulary for a level.

        Args:
            level_id: Level identifier.
            limit: Maximum number of items to return.

        Returns:
            Items in display order; empty when the level has no content.
        """
        pass

    @abstractmethod
    async def get_scene_meta(self, level_id: int) -> LevelSceneMeta | None:
        """Fetch scene metadata for a level, or None if the level is unknown."""
        pass


class SpeechRecognizer(ABC):
    """
    Port for single-shot speech recognition.

    One call yields at most one transcript. Failures raise SpeechRecognitionError.
    """

    @abstractmethod
    def is_supported(self) -> bool:
        pass

    @abstractmethod
    async def recognize(self, locale: str) -> str:
        """Capture one utterance and return its transcript."""
        pass

    async def close(self) -> None:
        """Release any held resources. Optional for implementations."""
        return None


class ProgressStore(ABC):
    """
    Port for per-user progress persistence.

    Supports read-one and upsert-one only; no multi-row transactions.
    Failures raise ProgressStoreError.

    Implementations:
        - InMemoryProgressStore
        - YamlProgressStore
    """

    @abstractmethod
    async def get_review(self, user_id: str, vocabulary_id: str) -> ReviewProgressRecord | None:
        pass

    @abstractmethod
    async def upsert_review(self, record: ReviewProgressRecord) -> None:
        pass

    @abstractmethod
    async def list_reviews(self, user_id: str) -> list[ReviewProgressRecord]:
        pass

    @abstractmethod
    async def get_profile(self, user_id: str) -> UserProfileProgress | None:
        pass

    @abstractmethod
    async def upsert_profile(self, profile: UserProfileProgress) -> None:
        pass

    @abstractmethod
    async def record_session(self, stats: SessionStats) -> None:
        pass

    @abstractmethod
    async def log_review_session(self, log: ReviewSessionLog) -> None:
        pass

    @abstractmethod
    async def list_review_sessions(self, user_id: str, since: datetime) -> list[ReviewSessionLog]:
        pass
