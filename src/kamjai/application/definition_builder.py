"""
Definition builder for mini-game sessions.

Maps (level id, vocabulary pool) to a MiniGameDefinition. The builder is
a pure function; the loader below fetches its inputs from a repository.
"""

import asyncio
import logging
from collections.abc import Sequence

from kamjai.application.intent_matcher import build_intent_targets_from_vocab
from kamjai.application.levels import get_level_spec, parse_mechanic
from kamjai.domain.constants import (
    BASE_DURATION_SECONDS,
    BASE_MISTAKES,
    BASE_PROMPTS,
    DEFAULT_VOCAB_LIMIT,
    MAX_DURATION_SECONDS,
    MAX_PROMPTS,
    MIN_DURATION_SECONDS,
    MIN_MISTAKES,
    MIN_PROMPTS,
    SPEED_FACTOR_STEP,
)
from kamjai.domain.minigame.models import (
    MechanicType,
    MiniGameDefinition,
    MiniGameDifficulty,
    VocabularyItem,
)
from kamjai.domain.ports import VocabularyRepository

logger = logging.getLogger(__name__)


def _clamp(low: int, high: int, value: int) -> int:
    return max(low, min(high, value))


def compute_difficulty(level_id: int, pool_size: int) -> MiniGameDifficulty:
    """Prompt count, mistake budget and speed factor for a level."""
    prompt_count = _clamp(MIN_PROMPTS, MAX_PROMPTS, min(pool_size, BASE_PROMPTS + level_id // 3))
    max_mistakes = max(MIN_MISTAKES, BASE_MISTAKES - level_id // 12)
    return MiniGameDifficulty(
        prompt_count=prompt_count,
        max_mistakes=max_mistakes,
        speed_factor=1 + level_id * SPEED_FACTOR_STEP,
    )


def compute_duration_seconds(level_id: int) -> int:
    return _clamp(MIN_DURATION_SECONDS, MAX_DURATION_SECONDS, BASE_DURATION_SECONDS + level_id // 2)


def build_definition(
    level_id: int,
    vocab_pool: Sequence[VocabularyItem],
    *,
    title: str | None = None,
    scene: str | None = None,
    mechanic: MechanicType | None = None,
) -> MiniGameDefinition | None:
    """
    Build the session definition for a level.

    Returns None when the pool is empty; a zero-prompt session could never
    complete naturally, so "no content" is reported as an absence.

    Note: prompt_count is floored at 4 even for smaller pools. Such sessions
    simply run out of prompts early and complete when the last one is answered.
    """
    if not vocab_pool:
        logger.info(f"No vocabulary for level {level_id}; definition unavailable")
        return None

    spec = get_level_spec(level_id)
    return MiniGameDefinition(
        level_id=level_id,
        title=title or (spec.title if spec else f"Level {level_id}"),
        scene=scene or (spec.scene if spec else f"level_{level_id}"),
        mechanic=mechanic or (spec.mechanic if spec else MechanicType.SORT_MATCH),
        duration_seconds=compute_duration_seconds(level_id),
        difficulty=compute_difficulty(level_id, len(vocab_pool)),
        intent_map=tuple(build_intent_targets_from_vocab(vocab_pool)),
    )


async def load_minigame_definition(
    level_id: int,
    repo: VocabularyRepository,
    limit: int = DEFAULT_VOCAB_LIMIT,
) -> MiniGameDefinition | None:
    """
    Fetch scene metadata and vocabulary for a level and build its definition.

    The repository's scene tag overrides the catalog scene.
    """
    scene_meta, vocab = await asyncio.gather(
        repo.get_scene_meta(level_id),
        repo.get_level_vocab(level_id, limit),
    )

    if scene_meta is None:
        logger.info(f"Level {level_id} has no scene metadata; definition unavailable")
        return None

    return build_definition(
        level_id,
        vocab,
        scene=scene_meta.scene,
        mechanic=parse_mechanic(scene_meta.mechanic),
    )
