"""
YAML Progress Store — file-backed ProgressStore.

The whole document is read on every call and rewritten on every upsert.
There is no locking: concurrent writers race and the last write wins.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml

from kamjai.domain.errors import ProgressStoreError
from kamjai.domain.minigame.models import SessionStats
from kamjai.domain.ports import ProgressStore
from kamjai.domain.progress.models import (
    ReviewProgressRecord,
    ReviewSessionLog,
    RuntimeSettings,
    UserProfileProgress,
)

logger = logging.getLogger(__name__)

LIST_SECTIONS = ("reviews", "sessions", "review_sessions")


@contextmanager
def _decoding(path: Path, what: str):
    """Re-raise a malformed entry as ProgressStoreError."""
    try:
        yield
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise ProgressStoreError(f"{path}: malformed {what}: {e!r}") from e


def _dt_out(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _dt_in(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _review_to_dict(record: ReviewProgressRecord) -> dict[str, Any]:
    return {
        "user_id": record.user_id,
        "vocabulary_id": record.vocabulary_id,
        "box": record.box,
        "times_correct": record.times_correct,
        "times_incorrect": record.times_incorrect,
        "incorrect_streak": record.incorrect_streak,
        "last_reviewed": _dt_out(record.last_reviewed),
        "next_review": _dt_out(record.next_review),
        "problem_word": record.problem_word,
    }


def _review_from_dict(raw: dict[str, Any]) -> ReviewProgressRecord:
    return ReviewProgressRecord(
        user_id=str(raw["user_id"]),
        vocabulary_id=str(raw["vocabulary_id"]),
        box=int(raw.get("box", 1)),
        times_correct=int(raw.get("times_correct", 0)),
        times_incorrect=int(raw.get("times_incorrect", 0)),
        incorrect_streak=int(raw.get("incorrect_streak", 0)),
        last_reviewed=_dt_in(raw.get("last_reviewed")),
        next_review=_dt_in(raw.get("next_review")),
        problem_word=bool(raw.get("problem_word", False)),
    )


def _profile_to_dict(profile: UserProfileProgress) -> dict[str, Any]:
    return {
        "tokens": profile.tokens,
        "unlocked_levels": list(profile.unlocked_levels),
        "unlocked_cosmetics": list(profile.unlocked_cosmetics),
        "settings": profile.settings.to_dict(),
    }


def _profile_from_dict(user_id: str, raw: dict[str, Any]) -> UserProfileProgress:
    return UserProfileProgress(
        user_id=user_id,
        tokens=int(raw.get("tokens", 0)),
        unlocked_levels=list(raw.get("unlocked_levels") or [1]),
        unlocked_cosmetics=[str(c) for c in raw.get("unlocked_cosmetics") or []],
        settings=RuntimeSettings.from_raw(raw.get("settings")),
    )


class YamlProgressStore(ProgressStore):
    """Persists reviews, profiles and session logs to one YAML file."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = yaml.safe_load(self.path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ProgressStoreError(f"Cannot read progress file {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise ProgressStoreError(f"{self.path}: expected a mapping at the top level")
        for key in LIST_SECTIONS:
            entries = data.get(key) or []
            if key in data:
                data[key] = entries
            if not isinstance(entries, list) or not all(isinstance(e, dict) for e in entries):
                raise ProgressStoreError(f"{self.path}: '{key}' must be a list of mappings")
        profiles = data.get("profiles") or {}
        if "profiles" in data:
            data["profiles"] = profiles
        if not isinstance(profiles, dict) or not all(isinstance(p, dict) for p in profiles.values()):
            raise ProgressStoreError(f"{self.path}: 'profiles' must map user ids to mappings")
        return data

    def _write(self, data: dict[str, Any]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(
                yaml.safe_dump(data, allow_unicode=True, sort_keys=False),
                encoding="utf-8",
            )
        except OSError as e:
            raise ProgressStoreError(f"Cannot write progress file {self.path}: {e}") from e

    # ---------- Reviews ----------

    async def get_review(self, user_id: str, vocabulary_id: str) -> ReviewProgressRecord | None:
        for raw in self._read().get("reviews", []):
            if raw.get("user_id") == user_id and raw.get("vocabulary_id") == vocabulary_id:
                with _decoding(self.path, "review"):
                    return _review_from_dict(raw)
        return None

    async def upsert_review(self, record: ReviewProgressRecord) -> None:
        data = self._read()
        reviews = [
            r
            for r in data.get("reviews", [])
            if not (r.get("user_id") == record.user_id and r.get("vocabulary_id") == record.vocabulary_id)
        ]
        reviews.append(_review_to_dict(record))
        data["reviews"] = reviews
        self._write(data)

    async def list_reviews(self, user_id: str) -> list[ReviewProgressRecord]:
        with _decoding(self.path, "review"):
            return [_review_from_dict(r) for r in self._read().get("reviews", []) if r.get("user_id") == user_id]

    # ---------- Profiles ----------

    async def get_profile(self, user_id: str) -> UserProfileProgress | None:
        raw = self._read().get("profiles", {}).get(user_id)
        if raw is None:
            return None
        with _decoding(self.path, "profile"):
            return _profile_from_dict(user_id, raw)

    async def upsert_profile(self, profile: UserProfileProgress) -> None:
        data = self._read()
        profiles = data.setdefault("profiles", {})
        profiles[profile.user_id] = _profile_to_dict(profile)
        self._write(data)

    # ---------- Logs ----------

    async def record_session(self, stats: SessionStats) -> None:
        data = self._read()
        data.setdefault("sessions", []).append(
            {
                "id": stats.id,
                "user_id": stats.user_id,
                "level_id": stats.level_id,
                "score": stats.score,
                "words_learned": stats.words_learned,
                "accuracy": stats.accuracy,
                "time_seconds": stats.time_seconds,
                "created_at": _dt_out(stats.created_at),
            }
        )
        self._write(data)
        logger.debug(f"Recorded session {stats.id} for {stats.user_id}")

    async def log_review_session(self, log: ReviewSessionLog) -> None:
        data = self._read()
        data.setdefault("review_sessions", []).append(
            {
                "user_id": log.user_id,
                "reviewed_count": log.reviewed_count,
                "created_at": _dt_out(log.created_at),
            }
        )
        self._write(data)

    async def list_review_sessions(self, user_id: str, since: datetime) -> list[ReviewSessionLog]:
        logs = []
        for raw in self._read().get("review_sessions", []):
            if raw.get("user_id") != user_id:
                continue
            with _decoding(self.path, "review session"):
                created_at = _dt_in(raw.get("created_at"))
                if created_at is None or created_at < since:
                    continue
                logs.append(
                    ReviewSessionLog(
                        user_id=user_id,
                        reviewed_count=int(raw.get("reviewed_count", 0)),
                        created_at=created_at,
                    )
                )
        return logs
