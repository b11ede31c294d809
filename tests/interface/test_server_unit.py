from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from kamjai.application import config as config_module
from kamjai.application.factory import BUNDLED_CONTENT
from kamjai.consts import VERSION
from kamjai.domain.errors import ProgressStoreError
from kamjai.domain.progress.models import ReviewProgressRecord, ReviewSessionLog
from kamjai.infrastructure.adapters.memory_store import InMemoryProgressStore
from kamjai.infrastructure.adapters.yaml_store import YamlProgressStore
from kamjai.infrastructure.adapters.yaml_vocab import YamlVocabularyRepository
from kamjai.server import app, get_config, get_repository, get_store

client = TestClient(app)


@pytest.fixture(autouse=True)
def overrides(tmp_path, monkeypatch):
    monkeypatch.setattr(config_module, "CONFIG_FILE", tmp_path / "missing.toml")
    get_config.cache_clear()
    memory = InMemoryProgressStore()
    app.dependency_overrides[get_repository] = lambda: YamlVocabularyRepository(BUNDLED_CONTENT)
    app.dependency_overrides[get_store] = lambda: memory
    yield memory
    app.dependency_overrides.clear()
    get_config.cache_clear()


def test_health_check():
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"
    assert data["version"] == VERSION


def test_get_version():
    response = client.get("/version")
    assert response.status_code == 200
    assert response.json() == {"version": VERSION}


def test_list_levels():
    response = client.get("/levels")
    assert response.status_code == 200
    levels = response.json()
    assert len(levels) == 30
    assert levels[0] == {
        "level_id": 1,
        "title": "Passport Panic",
        "scene": "airport_arrival",
        "mechanic": "sort_match",
    }


# ---------- Definitions ----------


def test_get_definition():
    response = client.get("/definitions/1")
    assert response.status_code == 200
    data = response.json()
    assert data["level_id"] == 1
    assert data["mechanic"] == "sort_match"
    assert data["duration_seconds"] == 45
    assert data["difficulty"]["prompt_count"] == 5
    assert data["difficulty"]["max_mistakes"] == 4
    assert data["difficulty"]["speed_factor"] == pytest.approx(1.03)
    assert data["intent_map"][0]["intent"] == "INTENT_HELLO_1"
    assert data["intent_map"][0]["vocabulary_id"] == "a-hello"


def test_definition_without_content_is_404():
    response = client.get("/definitions/29")
    assert response.status_code == 404


def test_definition_with_broken_content_is_500():
    app.dependency_overrides[get_repository] = lambda: YamlVocabularyRepository(BUNDLED_CONTENT.parent / "nope.yaml")
    response = client.get("/definitions/1")
    assert response.status_code == 500


# ---------- Matching ----------


def test_match_thai_script():
    response = client.post("/match", json={"level_id": 1, "transcript": "สวัสดีครับ"})
    assert response.status_code == 200
    data = response.json()
    assert data["matched"] is True
    assert data["intent"] == "INTENT_HELLO_1"
    assert data["vocabulary_id"] == "a-hello"
    assert data["method"] == "exact_thai"
    assert data["confidence"] == 1.0


def test_match_fuzzy_romanization():
    data = client.post("/match", json={"level_id": 1, "transcript": "sawatdee"}).json()
    assert data["matched"] is True
    assert data["method"] == "fuzzy_romanization"
    assert data["vocabulary_id"] == "a-hello"


def test_match_respects_request_distance():
    data = client.post(
        "/match", json={"level_id": 1, "transcript": "sawatdee", "max_edit_distance": 0}
    ).json()
    assert data["matched"] is False
    assert data["method"] == "none"


def test_match_unknown_level():
    response = client.post("/match", json={"level_id": 29, "transcript": "hello"})
    assert response.status_code == 404


# ---------- Review ----------


def test_rate_new_item(overrides):
    response = client.post("/review/rate", json={"user_id": "u1", "vocabulary_id": "a-hello", "rating": "good"})
    assert response.status_code == 200
    data = response.json()
    assert data["points"] == 8
    assert data["persisted"] is True
    assert data["record"]["box"] == 2
    assert data["record"]["times_correct"] == 1
    assert overrides.reviews[("u1", "a-hello")].box == 2


def test_rate_rejects_unknown_rating():
    response = client.post("/review/rate", json={"user_id": "u1", "vocabulary_id": "a-hello", "rating": "perfect"})
    assert response.status_code == 422


def test_rate_read_failure_is_503(overrides):
    class BrokenStore(InMemoryProgressStore):
        async def get_review(self, user_id, vocabulary_id):
            raise ProgressStoreError("disk gone")

    app.dependency_overrides[get_store] = lambda: BrokenStore()
    response = client.post("/review/rate", json={"user_id": "u1", "vocabulary_id": "a-hello", "rating": "good"})
    assert response.status_code == 503
    assert "disk gone" in response.json()["detail"]


def test_rate_malformed_progress_file_is_503(tmp_path):
    path = tmp_path / "progress.yaml"
    path.write_text("reviews:\n  - {user_id: u1, vocabulary_id: a-hello, next_review: someday}\n", encoding="utf-8")
    app.dependency_overrides[get_store] = lambda: YamlProgressStore(path)

    response = client.post("/review/rate", json={"user_id": "u1", "vocabulary_id": "a-hello", "rating": "good"})

    assert response.status_code == 503
    assert "malformed review" in response.json()["detail"]


def test_rate_write_failure_reports_not_persisted():
    class ReadOnlyStore(InMemoryProgressStore):
        async def upsert_review(self, record):
            raise ProgressStoreError("read-only")

    app.dependency_overrides[get_store] = lambda: ReadOnlyStore()
    data = client.post("/review/rate", json={"user_id": "u1", "vocabulary_id": "a-hello", "rating": "easy"}).json()
    assert data["persisted"] is False
    assert data["points"] == 12


def _seed(store: InMemoryProgressStore) -> None:
    past = datetime.now(timezone.utc) - timedelta(days=1)
    future = datetime.now(timezone.utc) + timedelta(days=5)
    for record in [
        ReviewProgressRecord(user_id="u1", vocabulary_id="calm", box=3, next_review=past),
        ReviewProgressRecord(user_id="u1", vocabulary_id="leech", box=1, incorrect_streak=2, next_review=past),
        ReviewProgressRecord(user_id="u1", vocabulary_id="later", box=4, next_review=future),
    ]:
        store.reviews[(record.user_id, record.vocabulary_id)] = record


def test_due_queue_puts_leeches_first(overrides):
    _seed(overrides)

    response = client.get("/review/u1/due")

    assert response.status_code == 200
    assert [r["vocabulary_id"] for r in response.json()] == ["leech", "calm"]


def test_due_queue_leech_mode(overrides):
    _seed(overrides)
    data = client.get("/review/u1/due", params={"mode": "leech"}).json()
    assert [r["vocabulary_id"] for r in data] == ["leech"]


def test_due_queue_bad_mode():
    assert client.get("/review/u1/due", params={"mode": "weird"}).status_code == 422


def test_review_overview(overrides):
    _seed(overrides)
    overrides.review_logs.append(ReviewSessionLog("u1", 3, datetime.now(timezone.utc)))

    data = client.get("/review/u1/overview").json()

    assert [r["vocabulary_id"] for r in data["due"]] == ["leech", "calm"]
    assert data["leeches"] == ["leech"]
    assert data["today_reviews"] == 3
    assert data["daily_target"] == 2
    assert data["current_streak"] == 1


def test_review_session_counts_toward_overview(overrides):
    _seed(overrides)
    before = client.get("/review/u1/overview").json()
    assert before["today_reviews"] == 0
    assert before["current_streak"] == 0

    response = client.post("/review/u1/session", json={"ratings": ["good", "easy"]})

    assert response.status_code == 200
    data = response.json()
    assert [r["record"]["vocabulary_id"] for r in data["reviewed"]] == ["leech", "calm"]
    assert data["score"] == 20
    assert data["queue_size"] == 2
    assert data["finished"] is True

    after = client.get("/review/u1/overview").json()
    assert after["today_reviews"] == 2
    assert after["current_streak"] == 1
    assert after["due"] == []


def test_review_session_rejects_unknown_rating():
    response = client.post("/review/u1/session", json={"ratings": ["perfect"]})
    assert response.status_code == 422


def test_review_session_malformed_progress_file_is_503(tmp_path):
    path = tmp_path / "progress.yaml"
    path.write_text("reviews: [oops]\n", encoding="utf-8")
    app.dependency_overrides[get_store] = lambda: YamlProgressStore(path)

    response = client.post("/review/u1/session", json={"ratings": ["good"]})

    assert response.status_code == 503
