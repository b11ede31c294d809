"""KamJai CLI: root commands and the review, profile and config subgroups."""

import json
import logging
import sys
from dataclasses import asdict
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Annotated, Any

import typer

from kamjai.application.config import AppConfig, resolve_config

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="kamjai: Thai vocabulary mini-games and spaced review.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Register subgroups
# ---------------------------------------------------------------------------

review_app = typer.Typer(help="Spaced-repetition review.", no_args_is_help=True)
app.add_typer(review_app, name="review")

profile_app = typer.Typer(help="Learner profiles and runtime settings.", no_args_is_help=True)
app.add_typer(profile_app, name="profile")

config_app = typer.Typer(help="Manage kamjai configuration.")
app.add_typer(config_app, name="config")


def _resolve_with_overrides(ctx: typer.Context | None = None, **overrides: Any) -> AppConfig:
    if ctx is not None and ctx.obj:
        overrides.setdefault("verbose", ctx.obj.get("verbose_bonus"))
    return resolve_config(overrides)


class QueueMode(str, Enum):
    ALL = "all"
    LEECH = "leech"


def _parse_rating(rating: str):
    from kamjai.domain.progress.models import Rating

    try:
        return Rating(rating.lower())
    except ValueError as e:
        typer.secho(f"Unknown rating '{rating}'. Use again, hard, good or easy.", fg="red", err=True)
        raise typer.Exit(2) from e


def _jsonable(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 1,
    content: Annotated[
        Path | None, typer.Option("--content", help="YAML content file (levels + vocabulary).")
    ] = None,
    progress: Annotated[
        Path | None, typer.Option("--progress", help="YAML progress file. Omit for in-memory.")
    ] = None,
):
    """Global settings for kamjai."""
    ctx.ensure_object(dict)
    ctx.obj["verbose_bonus"] = verbose
    ctx.obj["content_path"] = content
    ctx.obj["progress_path"] = progress
    if verbose > 1:
        logging.getLogger("kamjai").setLevel(logging.DEBUG)


def _config(ctx: typer.Context, **overrides: Any) -> AppConfig:
    return _resolve_with_overrides(
        ctx,
        content_path=ctx.obj.get("content_path"),
        progress_path=ctx.obj.get("progress_path"),
        **overrides,
    )


def _load_definition(config: AppConfig, level_id: int):
    import asyncio

    from kamjai.application.definition_builder import load_minigame_definition
    from kamjai.application.factory import get_vocabulary_repository
    from kamjai.domain.errors import ContentError

    repo = get_vocabulary_repository(config)
    try:
        definition = asyncio.run(load_minigame_definition(level_id, repo, config.vocab_limit))
    except ContentError as e:
        typer.secho(f"Content error: {e}", fg="red", err=True)
        raise typer.Exit(1) from e

    if definition is None:
        typer.secho(f"No playable content for level {level_id}.", fg="yellow", err=True)
        raise typer.Exit(1)
    return definition


# ---------------------------------------------------------------------------
# Root commands
# ---------------------------------------------------------------------------


@app.command()
def definition(
    ctx: typer.Context,
    level_id: Annotated[int, typer.Argument(help="Level number (1-30).")],
    vocab_limit: Annotated[int | None, typer.Option(help="Vocabulary pool cap.")] = None,
):
    """Print the mini-game definition for a level as JSON."""
    config = _config(ctx, vocab_limit=vocab_limit)
    built = _load_definition(config, level_id)
    payload = asdict(built)
    payload["duration_ms"] = built.duration_ms
    typer.echo(json.dumps(_jsonable(payload), indent=2, ensure_ascii=False))


@app.command()
def match(
    ctx: typer.Context,
    transcript: Annotated[str, typer.Argument(help="Spoken or typed answer.")],
    level: Annotated[int, typer.Option("--level", "-l", help="Level whose intents to match.")] = 1,
    threshold: Annotated[
        float | None, typer.Option(help="Minimum fuzzy confidence (0-1).")
    ] = None,
    max_distance: Annotated[int | None, typer.Option(help="Maximum edit distance.")] = None,
    debug: Annotated[
        bool, typer.Option("--debug", help="Include the normalized forms compared against.")
    ] = False,
):
    """Resolve a transcript to one of a level's intents."""
    from kamjai.application.intent_matcher import match_spoken_intent, normalize_transcript_for_debug

    config = _config(ctx, match_confidence_threshold=threshold, max_edit_distance=max_distance)
    built = _load_definition(config, level)
    result = match_spoken_intent(
        transcript,
        built.intent_map,
        max_edit_distance=config.max_edit_distance,
        confidence_threshold=config.match_confidence_threshold,
    )
    payload = asdict(result)
    if debug:
        payload["normalized"] = normalize_transcript_for_debug(transcript)
    typer.echo(json.dumps(_jsonable(payload), indent=2, ensure_ascii=False))
    if not result.matched:
        raise typer.Exit(1)


@app.command()
def play(
    ctx: typer.Context,
    level_id: Annotated[int, typer.Argument(help="Level number (1-30).")],
    answers: Annotated[
        list[str] | None,
        typer.Option("--answer", "-a", help="Scripted answer; repeat for each prompt."),
    ] = None,
    step_ms: Annotated[int, typer.Option(help="Simulated time between answers.")] = 1000,
    user: Annotated[str, typer.Option(help="User id for recording the session.")] = "local",
    story: Annotated[
        bool, typer.Option("--story/--free", help="Story mode awards level completion.")
    ] = False,
):
    """Simulate a session with scripted answers and print the results.

    Answers are matched like voice transcripts; an answer that matches
    nothing is skipped without counting as a mistake.
    """
    import asyncio

    from kamjai.application.factory import get_progress_store
    from kamjai.application.intent_matcher import match_spoken_intent
    from kamjai.application.progression import ProgressionService
    from kamjai.application.session_engine import MiniGameEngine

    config = _config(ctx)
    built = _load_definition(config, level_id)

    now = 0
    engine = MiniGameEngine(built, clock=lambda: now, exclude_paused_time=config.exclude_paused_time)
    engine.start()

    for answer in answers or []:
        # Tick at the configured rate so a timeout lands mid-step
        target = now + step_ms
        while now < target and engine.accepts_input:
            now = min(target, now + config.tick_interval_ms)
            engine.tick()
        if not engine.accepts_input:
            typer.echo(f"[-] {answer!r} ignored: session over")
            break
        prompt = engine.current_prompt
        result = match_spoken_intent(
            answer,
            built.intent_map,
            max_edit_distance=config.max_edit_distance,
            confidence_threshold=config.match_confidence_threshold,
        )
        state = engine.apply_match(result)
        verdict = "-" if not result.matched else ("ok" if prompt and result.intent == prompt.intent else "x")
        typer.echo(f"[{verdict}] {answer!r} -> {result.intent or 'no match'}")
        if state.is_complete:
            break

    engine.end()
    results = engine.report_results()

    store = get_progress_store(config)
    stats = asyncio.run(
        ProgressionService(store).record_session_result(
            user, results, datetime.now(timezone.utc), story_mode=story
        )
    )

    typer.echo(f"Level {results.level_id}: {results.title} ({results.mechanic.value})")
    typer.echo(
        f"Correct: {results.correct_count}  Wrong: {results.incorrect_count}  "
        f"Accuracy: {results.accuracy}%  Speed: {results.speed_score}"
    )
    typer.echo(f"Words used: {results.used_vocab_count}  Score: {stats.score}")


@app.command()
def serve(
    host: Annotated[str, typer.Option(help="Bind address.")] = "127.0.0.1",
    port: Annotated[int, typer.Option(help="Port.")] = 8777,
    reload: Annotated[bool, typer.Option("--reload", help="Auto-reload on code changes.")] = False,
):
    """Run the HTTP server."""
    import uvicorn

    config = resolve_config()
    config.log_dir.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(config.log_dir / "server.log", encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s:%(name)s:%(message)s"))
    logging.getLogger("kamjai").addHandler(handler)

    uvicorn.run("kamjai.server:app", host=host, port=port, reload=reload)


@app.command()
def listen(
    ctx: typer.Context,
    level: Annotated[int, typer.Option("--level", "-l", help="Level whose intents to match.")] = 1,
    endpoint: Annotated[
        str | None, typer.Option(help="Speech endpoint URL. Defaults to config.")
    ] = None,
    user: Annotated[
        str | None, typer.Option(help="Honor this user's voice and public-mode settings.")
    ] = None,
):
    """Capture one utterance through the speech endpoint and match it."""
    import asyncio

    from kamjai.application.factory import get_progress_store, get_speech_recognizer
    from kamjai.application.input_adapters import VoiceInputAdapter
    from kamjai.application.progression import ProgressionService, voice_input_allowed
    from kamjai.domain.errors import ProgressStoreError

    config = _config(ctx, speech_endpoint=endpoint)
    built = _load_definition(config, level)
    if user is not None:
        try:
            profile = asyncio.run(ProgressionService(get_progress_store(config)).ensure_profile(user))
        except ProgressStoreError as e:
            typer.secho(f"Progress store error: {e}", fg="red", err=True)
            raise typer.Exit(1) from e
        if not voice_input_allowed(profile.settings):
            typer.secho(f"Voice input is off for {user} (voice disabled or public mode on).", fg="yellow", err=True)
            raise typer.Exit(1)
    recognizer = get_speech_recognizer(config)
    adapter = VoiceInputAdapter(
        built.intent_map,
        recognizer,
        locale=config.speech_locale,
        max_edit_distance=config.max_edit_distance,
        confidence_threshold=config.match_confidence_threshold,
    )
    if not adapter.is_supported():
        typer.secho("No speech endpoint configured (set KAMJAI_SPEECH_ENDPOINT).", fg="red", err=True)
        raise typer.Exit(1)

    async def _listen():
        try:
            return await adapter.listen()
        finally:
            await recognizer.close()

    result = asyncio.run(_listen())
    if result is None:
        raise typer.Exit(1)
    typer.echo(json.dumps(_jsonable(asdict(result)), indent=2, ensure_ascii=False))
    if not result.matched:
        raise typer.Exit(1)


@app.command()
def logs():
    """Open the log directory."""
    import os
    import subprocess

    config = resolve_config()
    if not config.log_dir.exists():
        config.log_dir.mkdir(parents=True, exist_ok=True)

    typer.echo(str(config.log_dir))
    if sys.platform == "darwin":
        subprocess.run(["open", str(config.log_dir)])
    elif sys.platform == "win32":
        os.startfile(str(config.log_dir))
    else:
        subprocess.run(["xdg-open", str(config.log_dir)])


# ---------------------------------------------------------------------------
# Review subgroup
# ---------------------------------------------------------------------------


@review_app.command("rate")
def review_rate(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument(help="Learner id.")],
    vocabulary_id: Annotated[str, typer.Argument(help="Vocabulary item id.")],
    rating: Annotated[str, typer.Argument(help="again, hard, good or easy.")],
):
    """Apply one rating and print the updated record."""
    import asyncio

    from kamjai.application.factory import get_progress_store
    from kamjai.application.review_service import ReviewService
    from kamjai.domain.errors import ProgressStoreError

    parsed = _parse_rating(rating)
    config = _config(ctx)
    service = ReviewService(get_progress_store(config))
    try:
        outcome = asyncio.run(service.rate(user_id, vocabulary_id, parsed, datetime.now(timezone.utc)))
    except ProgressStoreError as e:
        typer.secho(f"Progress store error: {e}", fg="red", err=True)
        raise typer.Exit(1) from e

    payload = {"record": asdict(outcome.record), "points": outcome.points, "persisted": outcome.persisted}
    typer.echo(json.dumps(_jsonable(payload), indent=2))
    if not outcome.persisted:
        typer.secho("WARNING: rating was not saved.", fg="yellow", err=True)


@review_app.command("due")
def review_due(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument(help="Learner id.")],
    mode: Annotated[QueueMode, typer.Option(help="'leech' keeps only problem items.")] = QueueMode.ALL,
):
    """List the items due for review, leeches first."""
    import asyncio

    from kamjai.application.factory import get_progress_store
    from kamjai.application.review_service import ReviewService
    from kamjai.domain.errors import ProgressStoreError

    config = _config(ctx)
    service = ReviewService(
        get_progress_store(config),
        queue_limit=config.review_queue_limit,
        session_size=config.review_session_size,
        daily_target=config.daily_review_target,
        streak_window_days=config.streak_window_days,
    )
    now = datetime.now(timezone.utc)
    try:
        queue = asyncio.run(service.due_queue(user_id, now, mode.value))
    except ProgressStoreError as e:
        typer.secho(f"Progress store error: {e}", fg="red", err=True)
        raise typer.Exit(1) from e
    if not queue:
        typer.secho("Nothing due.", fg="green")
        return
    for record in queue:
        flag = " [problem]" if record.problem_word else ""
        typer.echo(f"{record.vocabulary_id}  box {record.box}  streak {record.incorrect_streak}{flag}")


@review_app.command("session")
def review_session(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument(help="Learner id.")],
    ratings: Annotated[list[str], typer.Argument(help="One rating per due item, in queue order.")],
    mode: Annotated[QueueMode, typer.Option(help="'leech' keeps only problem items.")] = QueueMode.ALL,
):
    """Work through the due queue with the given ratings and log the session."""
    import asyncio

    from kamjai.application.factory import get_progress_store
    from kamjai.application.review_service import ReviewService
    from kamjai.domain.errors import ProgressStoreError

    parsed = [_parse_rating(r) for r in ratings]
    config = _config(ctx)
    service = ReviewService(
        get_progress_store(config),
        queue_limit=config.review_queue_limit,
        session_size=config.review_session_size,
    )
    try:
        session = asyncio.run(service.run_session(user_id, parsed, datetime.now(timezone.utc), mode.value))
    except ProgressStoreError as e:
        typer.secho(f"Progress store error: {e}", fg="red", err=True)
        raise typer.Exit(1) from e

    if not session.queue:
        typer.secho("Nothing due.", fg="green")
        return
    for rating, outcome in zip(parsed, session.outcomes):
        record = outcome.record
        typer.echo(f"{record.vocabulary_id}  {rating.value}  box {record.box}  +{outcome.points}")
    typer.echo(f"Reviewed: {len(session.outcomes)}/{len(session.queue)}  Score: {session.score}")
    if not all(o.persisted for o in session.outcomes):
        typer.secho("WARNING: some ratings were not saved.", fg="yellow", err=True)


@review_app.command("schedule")
def review_schedule(
    box: Annotated[int, typer.Argument(help="Current box (1-5).")],
    rating: Annotated[str, typer.Argument(help="again, hard, good or easy.")],
    streak: Annotated[int, typer.Option(help="Incorrect streak after this rating.")] = 0,
):
    """Preview the box and interval a rating would produce."""
    from kamjai.application.srs import interval_days, next_box

    parsed = _parse_rating(rating)
    new_box = next_box(box, parsed, streak)
    typer.echo(json.dumps({"box": new_box, "interval_days": interval_days(new_box, parsed)}))


# ---------------------------------------------------------------------------
# Profile subgroup
# ---------------------------------------------------------------------------


def _run_profile(ctx: typer.Context, action):
    """Run a ProgressionService coroutine and print the resulting profile."""
    import asyncio

    from kamjai.application.factory import get_progress_store
    from kamjai.application.progression import ProgressionService
    from kamjai.domain.errors import ProgressStoreError

    service = ProgressionService(get_progress_store(_config(ctx)))
    try:
        profile = asyncio.run(action(service))
    except ProgressStoreError as e:
        typer.secho(f"Progress store error: {e}", fg="red", err=True)
        raise typer.Exit(1) from e
    typer.echo(json.dumps(_jsonable(asdict(profile)), indent=2))


@profile_app.command("show")
def profile_show(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument(help="Learner id.")],
):
    """Print a learner's profile, creating it on first use."""
    _run_profile(ctx, lambda service: service.ensure_profile(user_id))


@profile_app.command("settings")
def profile_settings(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument(help="Learner id.")],
    voice: Annotated[bool | None, typer.Option("--voice/--no-voice", help="Voice answers.")] = None,
    public: Annotated[
        bool | None, typer.Option("--public/--no-public", help="Quiet mode; disables voice.")
    ] = None,
    romanization: Annotated[
        bool | None, typer.Option("--romanization/--no-romanization", help="Show romanization.")
    ] = None,
    english: Annotated[
        bool | None, typer.Option("--english/--no-english", help="Show English meanings.")
    ] = None,
):
    """Change runtime settings; options left out keep their current value."""
    from dataclasses import replace

    changes = {
        "voice_mode_enabled": voice,
        "public_mode_enabled": public,
        "show_romanization": romanization,
        "show_english_meaning": english,
    }
    changes = {k: v for k, v in changes.items() if v is not None}

    async def _update(service):
        profile = await service.ensure_profile(user_id)
        return await service.update_settings(user_id, replace(profile.settings, **changes))

    _run_profile(ctx, _update)


@profile_app.command("unlock-all")
def profile_unlock_all(
    ctx: typer.Context,
    user_id: Annotated[str, typer.Argument(help="Learner id.")],
):
    """Unlock every level for a learner."""
    _run_profile(ctx, lambda service: service.unlock_all(user_id))


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show():
    """Display final resolved configuration."""
    config = resolve_config()
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    typer.echo(json.dumps(d, indent=2))
