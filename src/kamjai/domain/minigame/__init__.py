# Domain Mini-Game Package
from .models import (
    GamePrompt,
    IntentMatchResult,
    IntentTarget,
    LevelSceneMeta,
    MatchMethod,
    MechanicType,
    MiniGameDefinition,
    MiniGameDifficulty,
    MiniGameResults,
    MiniGameState,
    SessionStats,
    VocabularyItem,
)

__all__ = [
    "GamePrompt",
    "IntentMatchResult",
    "IntentTarget",
    "LevelSceneMeta",
    "MatchMethod",
    "MechanicType",
    "MiniGameDefinition",
    "MiniGameDifficulty",
    "MiniGameResults",
    "MiniGameState",
    "SessionStats",
    "VocabularyItem",
]
