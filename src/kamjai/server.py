import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from functools import lru_cache
from typing import Literal

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel

from kamjai.application.config import AppConfig, resolve_config
from kamjai.application.definition_builder import load_minigame_definition
from kamjai.application.factory import get_progress_store, get_vocabulary_repository
from kamjai.application.intent_matcher import match_spoken_intent
from kamjai.application.levels import LEVEL_CATALOG
from kamjai.application.review_service import ReviewService
from kamjai.consts import VERSION
from kamjai.domain.errors import ContentError, ProgressStoreError
from kamjai.domain.minigame.models import MiniGameDefinition
from kamjai.domain.ports import ProgressStore, VocabularyRepository
from kamjai.domain.progress.models import Rating, ReviewProgressRecord

logger = logging.getLogger("kamjai.server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"KamJai Server v{VERSION} starting up...")
    yield
    # Shutdown
    logger.info("KamJai Server shutting down...")


app = FastAPI(
    title="KamJai Server",
    description="Mini-game definitions, intent matching and review scheduling.",
    version=VERSION,
    lifespan=lifespan,
)

start_time = time.time()


# ---------- Dependencies ----------


@lru_cache
def get_config() -> AppConfig:
    return resolve_config()


@lru_cache
def get_repository() -> VocabularyRepository:
    return get_vocabulary_repository(get_config())


@lru_cache
def get_store() -> ProgressStore:
    # Cached so the in-memory store outlives a single request
    return get_progress_store(get_config())


async def _definition_or_404(level_id: int, repo: VocabularyRepository, config: AppConfig) -> MiniGameDefinition:
    try:
        definition = await load_minigame_definition(level_id, repo, config.vocab_limit)
    except ContentError as e:
        logger.error(f"Content error for level {level_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e)) from e
    if definition is None:
        raise HTTPException(status_code=404, detail=f"No playable content for level {level_id}")
    return definition


# ---------- Models ----------


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


class LevelSummary(BaseModel):
    level_id: int
    title: str
    scene: str
    mechanic: str


class DifficultyModel(BaseModel):
    prompt_count: int
    max_mistakes: int
    speed_factor: float


class IntentTargetModel(BaseModel):
    intent: str
    thai_script: str
    romanization: str
    english_translation: str
    vocabulary_id: str


class DefinitionResponse(BaseModel):
    level_id: int
    title: str
    scene: str
    mechanic: str
    duration_seconds: int
    difficulty: DifficultyModel
    intent_map: list[IntentTargetModel]

    @classmethod
    def from_definition(cls, definition: MiniGameDefinition) -> "DefinitionResponse":
        d = definition.difficulty
        return cls(
            level_id=definition.level_id,
            title=definition.title,
            scene=definition.scene,
            mechanic=definition.mechanic.value,
            duration_seconds=definition.duration_seconds,
            difficulty=DifficultyModel(
                prompt_count=d.prompt_count,
                max_mistakes=d.max_mistakes,
                speed_factor=d.speed_factor,
            ),
            intent_map=[
                IntentTargetModel(
                    intent=t.intent,
                    thai_script=t.thai_script,
                    romanization=t.romanization,
                    english_translation=t.english_translation,
                    vocabulary_id=t.vocabulary_id,
                )
                for t in definition.intent_map
            ],
        )


class MatchRequest(BaseModel):
    level_id: int
    transcript: str
    # If None, use config.
    confidence_threshold: float | None = None
    max_edit_distance: int | None = None


class MatchResponse(BaseModel):
    matched: bool
    intent: str | None
    vocabulary_id: str | None
    confidence: float
    method: str
    normalized_transcript: str


class RateRequest(BaseModel):
    user_id: str
    vocabulary_id: str
    rating: Rating


class ReviewRecordModel(BaseModel):
    vocabulary_id: str
    box: int
    times_correct: int
    times_incorrect: int
    incorrect_streak: int
    last_reviewed: datetime | None
    next_review: datetime | None
    problem_word: bool

    @classmethod
    def from_record(cls, record: ReviewProgressRecord) -> "ReviewRecordModel":
        return cls(
            vocabulary_id=record.vocabulary_id,
            box=record.box,
            times_correct=record.times_correct,
            times_incorrect=record.times_incorrect,
            incorrect_streak=record.incorrect_streak,
            last_reviewed=record.last_reviewed,
            next_review=record.next_review,
            problem_word=record.problem_word,
        )


class RateResponse(BaseModel):
    record: ReviewRecordModel
    points: int
    persisted: bool


# ---------- Routes ----------


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(status="ok", version=VERSION, uptime_seconds=time.time() - start_time)


@app.get("/version")
async def get_version():
    return {"version": VERSION}


@app.get("/levels", response_model=list[LevelSummary])
async def list_levels():
    return [
        LevelSummary(level_id=s.level_id, title=s.title, scene=s.scene, mechanic=s.mechanic.value)
        for s in LEVEL_CATALOG.values()
    ]


@app.get("/definitions/{level_id}", response_model=DefinitionResponse)
async def get_definition(
    level_id: int,
    repo: VocabularyRepository = Depends(get_repository),
    config: AppConfig = Depends(get_config),
):
    definition = await _definition_or_404(level_id, repo, config)
    return DefinitionResponse.from_definition(definition)


@app.post("/match", response_model=MatchResponse)
async def match_transcript(
    req: MatchRequest,
    repo: VocabularyRepository = Depends(get_repository),
    config: AppConfig = Depends(get_config),
):
    """Resolve a transcript against a level's intent targets."""
    definition = await _definition_or_404(req.level_id, repo, config)
    threshold = (
        config.match_confidence_threshold if req.confidence_threshold is None else req.confidence_threshold
    )
    distance = config.max_edit_distance if req.max_edit_distance is None else req.max_edit_distance

    result = match_spoken_intent(
        req.transcript,
        definition.intent_map,
        max_edit_distance=distance,
        confidence_threshold=threshold,
    )
    return MatchResponse(
        matched=result.matched,
        intent=result.intent,
        vocabulary_id=result.vocabulary_id,
        confidence=result.confidence,
        method=result.method.value,
        normalized_transcript=result.normalized_transcript,
    )


@app.post("/review/rate", response_model=RateResponse)
async def rate_review(
    req: RateRequest,
    store: ProgressStore = Depends(get_store),
):
    service = ReviewService(store)
    try:
        outcome = await service.rate(req.user_id, req.vocabulary_id, req.rating, datetime.now(timezone.utc))
    except ProgressStoreError as e:
        logger.error(f"Review read failed: {e}")
        raise HTTPException(status_code=503, detail=str(e)) from e
    return RateResponse(
        record=ReviewRecordModel.from_record(outcome.record),
        points=outcome.points,
        persisted=outcome.persisted,
    )


@app.get("/review/{user_id}/due", response_model=list[ReviewRecordModel])
async def due_reviews(
    user_id: str,
    mode: Literal["all", "leech"] = "all",
    store: ProgressStore = Depends(get_store),
    config: AppConfig = Depends(get_config),
):
    service = ReviewService(
        store,
        queue_limit=config.review_queue_limit,
        session_size=config.review_session_size,
    )
    try:
        queue = await service.due_queue(user_id, datetime.now(timezone.utc), mode)
    except ProgressStoreError as e:
        logger.error(f"Review read failed: {e}")
        raise HTTPException(status_code=503, detail=str(e)) from e
    return [ReviewRecordModel.from_record(r) for r in queue]


class ReviewOverviewResponse(BaseModel):
    due: list[ReviewRecordModel]
    leeches: list[str]
    today_reviews: int
    daily_target: int
    current_streak: int


@app.get("/review/{user_id}/overview", response_model=ReviewOverviewResponse)
async def review_overview(
    user_id: str,
    store: ProgressStore = Depends(get_store),
    config: AppConfig = Depends(get_config),
):
    service = ReviewService(
        store,
        queue_limit=config.review_queue_limit,
        daily_target=config.daily_review_target,
        streak_window_days=config.streak_window_days,
    )
    try:
        overview = await service.overview(user_id, datetime.now(timezone.utc))
    except ProgressStoreError as e:
        logger.error(f"Review read failed: {e}")
        raise HTTPException(status_code=503, detail=str(e)) from e
    return ReviewOverviewResponse(
        due=[ReviewRecordModel.from_record(r) for r in overview.due],
        leeches=[r.vocabulary_id for r in overview.leeches],
        today_reviews=overview.today_reviews,
        daily_target=overview.daily_target,
        current_streak=overview.current_streak,
    )


class ReviewSessionRequest(BaseModel):
    ratings: list[Rating]
    mode: Literal["all", "leech"] = "all"


class ReviewSessionResponse(BaseModel):
    reviewed: list[RateResponse]
    queue_size: int
    score: int
    finished: bool


@app.post("/review/{user_id}/session", response_model=ReviewSessionResponse)
async def review_session(
    user_id: str,
    req: ReviewSessionRequest,
    store: ProgressStore = Depends(get_store),
    config: AppConfig = Depends(get_config),
):
    """Rate the due queue in order and log the pass for the daily streak."""
    service = ReviewService(
        store,
        queue_limit=config.review_queue_limit,
        session_size=config.review_session_size,
    )
    try:
        session = await service.run_session(user_id, req.ratings, datetime.now(timezone.utc), req.mode)
    except ProgressStoreError as e:
        logger.error(f"Review session failed: {e}")
        raise HTTPException(status_code=503, detail=str(e)) from e
    return ReviewSessionResponse(
        reviewed=[
            RateResponse(
                record=ReviewRecordModel.from_record(o.record),
                points=o.points,
                persisted=o.persisted,
            )
            for o in session.outcomes
        ],
        queue_size=len(session.queue),
        score=session.score,
        finished=session.is_finished,
    )
