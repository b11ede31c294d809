from unittest.mock import AsyncMock

import pytest

from kamjai.application.definition_builder import (
    build_definition,
    compute_difficulty,
    compute_duration_seconds,
    load_minigame_definition,
)
from kamjai.application.levels import LEVEL_CATALOG, get_level_spec, parse_mechanic
from kamjai.domain.minigame.models import LevelSceneMeta, MechanicType, VocabularyItem


def make_vocab(count: int) -> list[VocabularyItem]:
    return [
        VocabularyItem(id=f"v{i}", thai_script=f"คำ{i}", romanization=f"word {i}", english_translation=f"word {i}")
        for i in range(1, count + 1)
    ]


# ---------- Difficulty Formulas ----------


def test_level_twelve_with_large_pool():
    definition = build_definition(12, make_vocab(20))

    assert definition.difficulty.prompt_count == 9
    assert definition.difficulty.max_mistakes == 3
    assert definition.duration_seconds == 51
    assert definition.duration_ms == 51_000
    assert definition.difficulty.speed_factor == pytest.approx(1.36)


def test_catalog_metadata_applied():
    definition = build_definition(12, make_vocab(5))
    assert definition.title == "Symptom Match"
    assert definition.scene == "pharmacy"
    assert definition.mechanic == MechanicType.SORT_MATCH


@pytest.mark.parametrize(
    "level_id, pool, expected",
    [
        (1, 2, 4),  # floor applies even when the pool is smaller
        (1, 20, 5),
        (3, 5, 5),
        (15, 20, 10),
        (30, 20, 10),
    ],
)
def test_prompt_count_is_clamped(level_id, pool, expected):
    assert compute_difficulty(level_id, pool).prompt_count == expected


@pytest.mark.parametrize("level_id, expected", [(1, 4), (11, 4), (12, 3), (24, 2), (30, 2), (60, 2)])
def test_mistake_budget(level_id, expected):
    assert compute_difficulty(level_id, 10).max_mistakes == expected


@pytest.mark.parametrize("level_id, expected", [(0, 45), (1, 45), (30, 60), (200, 90)])
def test_duration_is_clamped(level_id, expected):
    assert compute_duration_seconds(level_id) == expected


def test_intent_map_covers_pool_in_order():
    vocab = make_vocab(6)
    definition = build_definition(2, vocab)
    assert [t.vocabulary_id for t in definition.intent_map] == [v.id for v in vocab]
    assert len({t.intent for t in definition.intent_map}) == 6


def test_empty_pool_gives_none():
    assert build_definition(5, []) is None


def test_unknown_level_falls_back():
    definition = build_definition(99, make_vocab(4))
    assert definition.title == "Level 99"
    assert definition.scene == "level_99"
    assert definition.mechanic == MechanicType.SORT_MATCH
    assert definition.duration_seconds == 90


def test_explicit_overrides_beat_catalog():
    definition = build_definition(
        1, make_vocab(4), title="Custom", scene="custom", mechanic=MechanicType.RUNNER
    )
    assert (definition.title, definition.scene, definition.mechanic) == (
        "Custom",
        "custom",
        MechanicType.RUNNER,
    )


# ---------- Catalog ----------


def test_catalog_has_thirty_levels():
    assert sorted(LEVEL_CATALOG) == list(range(1, 31))
    assert get_level_spec(1).scene == "airport_arrival"
    assert get_level_spec(30).title == "Social Links"
    assert get_level_spec(31) is None


@pytest.mark.parametrize(
    "raw, expected",
    [("runner", MechanicType.RUNNER), (" Rhythm ", MechanicType.RHYTHM), ("boss_fight", None), (None, None), ("", None)],
)
def test_parse_mechanic(raw, expected):
    assert parse_mechanic(raw) == expected


# ---------- Loader ----------


@pytest.fixture
def mock_repo():
    return AsyncMock()


@pytest.mark.asyncio
async def test_loader_builds_definition(mock_repo):
    mock_repo.get_scene_meta.return_value = LevelSceneMeta(
        level_id=3, environment_name="Street food", scene="night_stall", mechanic="rhythm"
    )
    mock_repo.get_level_vocab.return_value = make_vocab(8)

    definition = await load_minigame_definition(3, mock_repo, limit=8)

    assert definition is not None
    assert definition.title == "Spice Survivor"
    assert definition.scene == "night_stall"
    assert definition.mechanic == MechanicType.RHYTHM
    mock_repo.get_level_vocab.assert_awaited_once_with(3, 8)


@pytest.mark.asyncio
async def test_loader_keeps_catalog_when_meta_has_no_tags(mock_repo):
    mock_repo.get_scene_meta.return_value = LevelSceneMeta(level_id=4, environment_name="Store")
    mock_repo.get_level_vocab.return_value = make_vocab(4)

    definition = await load_minigame_definition(4, mock_repo)

    assert definition.scene == "seven_counter"
    assert definition.mechanic == MechanicType.DIALOGUE_TILES


@pytest.mark.asyncio
async def test_loader_missing_meta_gives_none(mock_repo):
    mock_repo.get_scene_meta.return_value = None
    mock_repo.get_level_vocab.return_value = make_vocab(4)

    assert await load_minigame_definition(7, mock_repo) is None


@pytest.mark.asyncio
async def test_loader_empty_vocab_gives_none(mock_repo):
    mock_repo.get_scene_meta.return_value = LevelSceneMeta(level_id=7, environment_name="Cowork")
    mock_repo.get_level_vocab.return_value = []

    assert await load_minigame_definition(7, mock_repo) is None
