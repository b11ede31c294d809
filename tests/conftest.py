from datetime import datetime, timezone

import pytest

from kamjai.application.definition_builder import build_definition
from kamjai.application.intent_matcher import build_intent_targets_from_vocab
from kamjai.domain.minigame.models import (
    MechanicType,
    MiniGameDefinition,
    MiniGameDifficulty,
    VocabularyItem,
)
from kamjai.infrastructure.adapters.memory_store import InMemoryProgressStore


def make_vocab(count: int, prefix: str = "v") -> list[VocabularyItem]:
    """Distinct filler items whose romanizations are far apart."""
    return [
        VocabularyItem(
            id=f"{prefix}{i}",
            thai_script=f"คำ{i}",
            romanization=f"word number {i}",
            english_translation=f"word {i}",
        )
        for i in range(1, count + 1)
    ]


@pytest.fixture
def greeting_vocab():
    return [
        VocabularyItem(id="v-hello", thai_script="สวัสดี", romanization="sawatdi", english_translation="hello"),
        VocabularyItem(id="v-thanks", thai_script="ขอบคุณ", romanization="khop khun", english_translation="thank you"),
        VocabularyItem(id="v-water", thai_script="น้ำ", romanization="nam", english_translation="water"),
        VocabularyItem(id="v-rice", thai_script="ข้าว", romanization="khao", english_translation="rice"),
        VocabularyItem(id="v-spicy", thai_script="เผ็ด", romanization="phet", english_translation="spicy"),
    ]


@pytest.fixture
def greeting_targets(greeting_vocab):
    return build_intent_targets_from_vocab(greeting_vocab)


@pytest.fixture
def definition_factory():
    """Build a definition with explicit difficulty, bypassing level formulas."""

    def _make(
        prompt_count: int = 4,
        max_mistakes: int = 2,
        duration_seconds: int = 60,
        pool_size: int | None = None,
        level_id: int = 1,
    ) -> MiniGameDefinition:
        vocab = make_vocab(pool_size or prompt_count)
        return MiniGameDefinition(
            level_id=level_id,
            title="Test Level",
            scene="test_scene",
            mechanic=MechanicType.SORT_MATCH,
            duration_seconds=duration_seconds,
            difficulty=MiniGameDifficulty(
                prompt_count=prompt_count,
                max_mistakes=max_mistakes,
                speed_factor=1.0,
            ),
            intent_map=tuple(build_intent_targets_from_vocab(vocab)),
        )

    return _make


@pytest.fixture
def level_one_definition(greeting_vocab):
    return build_definition(1, greeting_vocab)


@pytest.fixture
def store():
    return InMemoryProgressStore()


@pytest.fixture
def now():
    return datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def vocab_factory():
    return make_vocab
