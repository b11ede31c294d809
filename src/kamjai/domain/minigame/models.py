"""
Domain models for vocabulary and mini-game sessions.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class MechanicType(str, Enum):
    """Gameplay mechanic tag. Presentation only; the engine treats all kinds alike."""

    RUNNER = "runner"
    SORT_MATCH = "sort_match"
    RHYTHM = "rhythm"
    CRAFT_SEQUENCE = "craft_sequence"
    DIALOGUE_TILES = "dialogue_tiles"


class MatchMethod(str, Enum):
    EXACT_THAI = "exact_thai"
    EXACT_ROMANIZATION = "exact_romanization"
    FUZZY_THAI = "fuzzy_thai"
    FUZZY_ROMANIZATION = "fuzzy_romanization"
    NONE = "none"


@dataclass(frozen=True)
class VocabularyItem:
    """
    A single vocabulary entry.

    Attributes:
        id: Stable identifier; the only identity of the item.
        thai_script: Thai script text.
        romanization: RTGS romanization.
        english_translation: Meaning, also the source of the intent tag.
        part_of_speech: Optional grammatical tag.
        difficulty_level: Optional difficulty hint.
    """

    id: str
    thai_script: str
    romanization: str
    english_translation: str
    part_of_speech: str | None = None
    difficulty_level: int | None = None


@dataclass(frozen=True)
class IntentTarget:
    """A vocabulary item projected into a session-unique intent tag."""

    intent: str
    thai_script: str
    romanization: str
    english_translation: str
    vocabulary_id: str


@dataclass(frozen=True)
class GamePrompt:
    id: str
    intent: str
    label_thai: str
    label_romanization: str
    label_english: str


@dataclass(frozen=True)
class LevelSceneMeta:
    level_id: int
    environment_name: str
    scene: str | None = None
    mechanic: str | None = None


@dataclass(frozen=True)
class MiniGameDifficulty:
    prompt_count: int
    max_mistakes: int
    speed_factor: float  # Not consumed by the engine


@dataclass(frozen=True)
class MiniGameDefinition:
    """
    Everything a session needs to run one playthrough.

    Immutable once built and shared read-only with the engine.
    """

    level_id: int
    title: str
    scene: str
    mechanic: MechanicType
    duration_seconds: int
    difficulty: MiniGameDifficulty
    intent_map: tuple[IntentTarget, ...]

    @property
    def duration_ms(self) -> int:
        return self.duration_seconds * 1000


@dataclass(frozen=True)
class MiniGameState:
    """
    Snapshot of one session.

    Transitions never mutate a state; they return a replacement. The raw
    intent log keeps duplicates while distinct_intents keeps first-seen order.
    """

    prompts: tuple[GamePrompt, ...]
    remaining_ms: int
    started_at_ms: int | None = None
    ended_at_ms: int | None = None
    is_paused: bool = False
    is_complete: bool = False
    current_prompt_index: int = 0
    correct_count: int = 0
    incorrect_count: int = 0
    used_intents: tuple[str, ...] = ()
    distinct_intents: tuple[str, ...] = ()

    # Pause accounting. With exclude_paused_time the clock stops while paused.
    exclude_paused_time: bool = True
    paused_at_ms: int | None = None
    paused_total_ms: int = 0

    @property
    def is_started(self) -> bool:
        return self.started_at_ms is not None

    @property
    def is_running(self) -> bool:
        return self.is_started and not self.is_paused and not self.is_complete

    @property
    def current_prompt(self) -> GamePrompt | None:
        if self.current_prompt_index < len(self.prompts):
            return self.prompts[self.current_prompt_index]
        return None


@dataclass(frozen=True)
class MiniGameResults:
    level_id: int
    title: str
    scene: str
    mechanic: MechanicType
    accuracy: int
    speed_score: int
    used_vocab_count: int
    used_intents: tuple[str, ...]
    correct_count: int
    incorrect_count: int
    elapsed_ms: int


@dataclass(frozen=True)
class IntentMatchResult:
    """
    Outcome of resolving a transcript against the session's intent targets.

    Attributes:
        matched: Whether any target was accepted.
        intent: Resolved intent tag, or None.
        vocabulary_id: Source vocabulary id of the resolved intent, or None.
        confidence: Score in [0, 1].
        method: Which matching stage produced the result.
        normalized_transcript: Canonical transcript, kept for diagnostics.
    """

    matched: bool
    intent: str | None
    vocabulary_id: str | None
    confidence: float
    method: MatchMethod
    normalized_transcript: str = ""

    @classmethod
    def unmatched(cls, normalized_transcript: str = "") -> "IntentMatchResult":
        return cls(
            matched=False,
            intent=None,
            vocabulary_id=None,
            confidence=0.0,
            method=MatchMethod.NONE,
            normalized_transcript=normalized_transcript,
        )


@dataclass
class SessionStats:
    """Row written to the progress store after a session ends."""

    id: str
    user_id: str
    level_id: int
    score: int
    words_learned: int
    accuracy: int
    time_seconds: int
    created_at: datetime | None = None
