from dataclasses import FrozenInstanceError

import pytest

from kamjai.domain.minigame.models import (
    IntentMatchResult,
    MatchMethod,
    MechanicType,
    MiniGameDefinition,
    MiniGameDifficulty,
    VocabularyItem,
)
from kamjai.domain.progress.models import Rating, RuntimeSettings


def test_vocabulary_item_is_immutable():
    item = VocabularyItem(id="v1", thai_script="น้ำ", romanization="nam", english_translation="water")
    with pytest.raises(FrozenInstanceError):
        item.romanization = "naam"


def test_definition_duration_ms():
    definition = MiniGameDefinition(
        level_id=1,
        title="T",
        scene="s",
        mechanic=MechanicType.RUNNER,
        duration_seconds=45,
        difficulty=MiniGameDifficulty(prompt_count=4, max_mistakes=2, speed_factor=1.0),
        intent_map=(),
    )
    assert definition.duration_ms == 45_000


def test_unmatched_result():
    result = IntentMatchResult.unmatched("abc")
    assert result.matched is False
    assert result.intent is None
    assert result.vocabulary_id is None
    assert result.confidence == 0.0
    assert result.method == MatchMethod.NONE
    assert result.normalized_transcript == "abc"


def test_rating_values():
    assert [r.value for r in Rating] == ["again", "hard", "good", "easy"]
    with pytest.raises(ValueError):
        Rating("perfect")


def test_runtime_settings_defaults():
    settings = RuntimeSettings()
    assert settings.to_dict() == {
        "voice_mode_enabled": True,
        "public_mode_enabled": False,
        "show_romanization": True,
        "show_english_meaning": False,
    }


def test_runtime_settings_from_raw_is_tolerant():
    settings = RuntimeSettings.from_raw(
        {"voice_mode_enabled": False, "public_mode_enabled": "yes", "extra": 1}
    )
    assert settings.voice_mode_enabled is False
    assert settings.public_mode_enabled is False
    assert settings.show_romanization is True


@pytest.mark.parametrize("raw", [None, "on", 3, ["voice_mode_enabled"]])
def test_runtime_settings_from_garbage(raw):
    assert RuntimeSettings.from_raw(raw) == RuntimeSettings()
