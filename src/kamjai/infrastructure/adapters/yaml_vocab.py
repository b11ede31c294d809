"""
YAML Vocabulary Repository — Infrastructure adapter for level content files.

Implements VocabularyRepository over a single YAML document:

    levels:
      - id: 1
        title: Passport Panic
        environment_name: Airport
        scene: airport_arrival
        mechanic: sort_match
        vocabulary:
          - id: v-hello
            thai_script: สวัสดี
            romanization: sawatdi
            english_translation: hello
"""

import logging
from pathlib import Path
from typing import Any

import yaml

from kamjai.domain.errors import ContentError
from kamjai.domain.minigame.models import LevelSceneMeta, VocabularyItem
from kamjai.domain.ports import VocabularyRepository

logger = logging.getLogger(__name__)

REQUIRED_VOCAB_FIELDS = ("id", "thai_script", "romanization", "english_translation")


def _parse_vocab(level_id: int, raw: Any) -> VocabularyItem:
    if not isinstance(raw, dict):
        raise ContentError(f"Level {level_id}: vocabulary entries must be mappings")
    missing = [key for key in REQUIRED_VOCAB_FIELDS if not raw.get(key)]
    if missing:
        raise ContentError(f"Level {level_id}: vocabulary entry missing {', '.join(missing)}")

    difficulty = raw.get("difficulty_level")
    return VocabularyItem(
        id=str(raw["id"]),
        thai_script=str(raw["thai_script"]),
        romanization=str(raw["romanization"]),
        english_translation=str(raw["english_translation"]),
        part_of_speech=raw.get("part_of_speech"),
        difficulty_level=int(difficulty) if difficulty is not None else None,
    )


class YamlVocabularyRepository(VocabularyRepository):
    """
    Reads levels and vocabulary from a YAML file.

    The file is parsed once, on first access. Malformed content raises
    ContentError rather than yielding a partial catalog.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._meta: dict[int, LevelSceneMeta] | None = None
        self._vocab: dict[int, list[VocabularyItem]] = {}

    @classmethod
    def from_text(cls, text: str) -> "YamlVocabularyRepository":
        """Build a repository from an in-memory YAML document."""
        repo = cls(Path("<memory>"))
        repo._load_document(text)
        return repo

    def _ensure_loaded(self) -> None:
        if self._meta is not None:
            return
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise ContentError(f"Cannot read content file {self.path}: {e}") from e
        self._load_document(text)
        logger.debug(f"Loaded {len(self._meta or {})} levels from {self.path}")

    def _load_document(self, text: str) -> None:
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            raise ContentError(f"Invalid YAML in {self.path}: {e}") from e

        levels = data.get("levels") if isinstance(data, dict) else None
        if not isinstance(levels, list):
            raise ContentError(f"{self.path}: expected a top-level 'levels' list")

        meta: dict[int, LevelSceneMeta] = {}
        vocab: dict[int, list[VocabularyItem]] = {}
        for entry in levels:
            if not isinstance(entry, dict) or "id" not in entry:
                raise ContentError(f"{self.path}: every level needs an 'id'")
            try:
                level_id = int(entry["id"])
            except (TypeError, ValueError) as e:
                raise ContentError(f"{self.path}: bad level id {entry['id']!r}") from e

            meta[level_id] = LevelSceneMeta(
                level_id=level_id,
                environment_name=str(entry.get("environment_name") or entry.get("title") or ""),
                scene=entry.get("scene"),
                mechanic=entry.get("mechanic"),
            )
            raw_vocab = entry.get("vocabulary") or []
            if not isinstance(raw_vocab, list):
                raise ContentError(f"Level {level_id}: 'vocabulary' must be a list")
            vocab[level_id] = [_parse_vocab(level_id, item) for item in raw_vocab]

        self._meta = meta
        self._vocab = vocab

    def level_ids(self) -> list[int]:
        self._ensure_loaded()
        return sorted(self._meta or {})

    async def get_level_vocab(self, level_id: int, limit: int) -> list[VocabularyItem]:
        self._ensure_loaded()
        return list(self._vocab.get(level_id, []))[: max(0, limit)]

    async def get_scene_meta(self, level_id: int) -> LevelSceneMeta | None:
        self._ensure_loaded()
        return (self._meta or {}).get(level_id)
