"""
Session engine for timed mini-games.

The state machine is a set of pure transition functions over an immutable
MiniGameState:

    Idle -> Running <-> Paused -> Complete (terminal)

Every transition takes the current time as an argument; nothing here reads
the wall clock except the MiniGameEngine wrapper's default clock. The wrapper
owns the single mutable reference and is the only writer.

Concurrency: all calls are synchronous and must come from one owner (event
loop or actor). The engine is not thread-safe.
"""

import logging
import math
import time
from collections.abc import Callable
from dataclasses import replace

from kamjai.domain.minigame.models import (
    GamePrompt,
    IntentMatchResult,
    MiniGameDefinition,
    MiniGameResults,
    MiniGameState,
)

logger = logging.getLogger(__name__)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _active_elapsed_ms(state: MiniGameState, now_ms: int) -> int:
    """Time that counts against the session clock."""
    if state.started_at_ms is None:
        return 0
    elapsed = now_ms - state.started_at_ms
    if state.exclude_paused_time:
        elapsed -= state.paused_total_ms
        if state.is_paused and state.paused_at_ms is not None:
            elapsed -= now_ms - state.paused_at_ms
    return max(0, elapsed)


def _remaining_ms(state: MiniGameState, definition: MiniGameDefinition, now_ms: int) -> int:
    return max(0, definition.duration_ms - _active_elapsed_ms(state, now_ms))


# ---------- Construction ----------


def build_prompts(definition: MiniGameDefinition) -> tuple[GamePrompt, ...]:
    """The first prompt_count intent targets, in order."""
    selected = definition.intent_map[: definition.difficulty.prompt_count]
    return tuple(
        GamePrompt(
            id=f"{target.vocabulary_id}-{index}",
            intent=target.intent,
            label_thai=target.thai_script,
            label_romanization=target.romanization,
            label_english=target.english_translation,
        )
        for index, target in enumerate(selected)
    )


def new_state(definition: MiniGameDefinition, exclude_paused_time: bool = True) -> MiniGameState:
    return MiniGameState(
        prompts=build_prompts(definition),
        remaining_ms=definition.duration_ms,
        exclude_paused_time=exclude_paused_time,
    )


# ---------- Transitions ----------


def start(state: MiniGameState, definition: MiniGameDefinition, now_ms: int) -> MiniGameState:
    if state.is_started or state.is_complete:
        return state
    return replace(
        state,
        started_at_ms=now_ms,
        ended_at_ms=None,
        is_paused=False,
        paused_at_ms=None,
    )


def end(state: MiniGameState, definition: MiniGameDefinition, now_ms: int) -> MiniGameState:
    """Complete the session. Idempotent: a complete state is returned unchanged."""
    if state.is_complete:
        return state
    remaining = state.remaining_ms
    if state.is_started:
        remaining = _remaining_ms(state, definition, now_ms)
    return replace(state, is_complete=True, ended_at_ms=now_ms, remaining_ms=remaining)


def tick(state: MiniGameState, definition: MiniGameDefinition, now_ms: int) -> MiniGameState:
    if not state.is_running:
        return state
    remaining = min(definition.duration_ms, _remaining_ms(state, definition, now_ms))
    updated = replace(state, remaining_ms=remaining)
    if remaining <= 0:
        return end(updated, definition, now_ms)
    return updated


def pause(state: MiniGameState, definition: MiniGameDefinition, now_ms: int) -> MiniGameState:
    """Freeze the visible clock. Ticks first so remaining_ms is accurate."""
    state = tick(state, definition, now_ms)
    if state.is_complete or state.is_paused:
        return state
    return replace(state, is_paused=True, paused_at_ms=now_ms)


def resume(state: MiniGameState, definition: MiniGameDefinition, now_ms: int) -> MiniGameState:
    """
    Clear the pause.

    With exclude_paused_time the paused span is added to paused_total_ms so the
    clock resumes where it stopped. Without it, the baseline is left alone and
    the paused span is charged against the session on the next tick.
    """
    if not state.is_started or state.is_complete or not state.is_paused:
        return state
    paused_total = state.paused_total_ms
    if state.exclude_paused_time and state.paused_at_ms is not None:
        paused_total += max(0, now_ms - state.paused_at_ms)
    return replace(state, is_paused=False, paused_at_ms=None, paused_total_ms=paused_total)


def submit_intent(
    state: MiniGameState,
    definition: MiniGameDefinition,
    intent: str,
    now_ms: int,
) -> MiniGameState:
    """
    Apply one answer.

    Ignored unless the session is running. A correct intent advances to the
    next prompt; a wrong one spends a mistake. Either can complete the session.
    """
    state = tick(state, definition, now_ms)
    if not state.is_running:
        return state

    prompt = state.current_prompt
    if prompt is None:
        return end(state, definition, now_ms)

    distinct = state.distinct_intents
    if intent not in distinct:
        distinct = distinct + (intent,)
    state = replace(state, used_intents=state.used_intents + (intent,), distinct_intents=distinct)

    if intent == prompt.intent:
        state = replace(
            state,
            correct_count=state.correct_count + 1,
            current_prompt_index=state.current_prompt_index + 1,
        )
        if state.current_prompt_index >= len(state.prompts):
            return end(state, definition, now_ms)
        return state

    state = replace(state, incorrect_count=state.incorrect_count + 1)
    if state.incorrect_count >= definition.difficulty.max_mistakes:
        return end(state, definition, now_ms)
    return state


# ---------- Results ----------


def report_results(
    state: MiniGameState,
    definition: MiniGameDefinition,
    now_ms: int | None = None,
) -> MiniGameResults:
    """
    Derive the results snapshot.

    accuracy and speed_score round half up. elapsed_ms is wall time from start
    to end (or to now_ms for a session still in progress).
    """
    attempts = state.correct_count + state.incorrect_count
    accuracy = _round_half_up(state.correct_count / attempts * 100) if attempts > 0 else 0

    elapsed_ms = 0
    if state.started_at_ms is not None:
        finish = state.ended_at_ms
        if finish is None:
            finish = now_ms if now_ms is not None else state.started_at_ms
        elapsed_ms = max(0, finish - state.started_at_ms)

    duration_ms = definition.duration_ms
    speed_score = 0
    if duration_ms > 0:
        speed_score = max(0, min(100, _round_half_up(state.remaining_ms / duration_ms * 100)))

    return MiniGameResults(
        level_id=definition.level_id,
        title=definition.title,
        scene=definition.scene,
        mechanic=definition.mechanic,
        accuracy=accuracy,
        speed_score=speed_score,
        used_vocab_count=len(state.distinct_intents),
        used_intents=state.distinct_intents,
        correct_count=state.correct_count,
        incorrect_count=state.incorrect_count,
        elapsed_ms=elapsed_ms,
    )


# ---------- Owning wrapper ----------


def wall_clock_ms() -> int:
    return int(time.time() * 1000)


class MiniGameEngine:
    """
    Owner of one session's state.

    Holds the only reference to the live state and exposes immutable snapshots.
    Every method accepts an explicit now_ms; the injected clock is used otherwise.
    """

    def __init__(
        self,
        definition: MiniGameDefinition,
        clock: Callable[[], int] | None = None,
        exclude_paused_time: bool = True,
    ):
        """
        Args:
            definition: Shared read-only session definition.
            clock: Millisecond clock; defaults to wall time.
            exclude_paused_time: Whether paused time is kept off the session clock.
        """
        self.definition = definition
        self._clock = clock or wall_clock_ms
        self._state = new_state(definition, exclude_paused_time=exclude_paused_time)

    @property
    def state(self) -> MiniGameState:
        return self._state

    @property
    def current_prompt(self) -> GamePrompt | None:
        return self._state.current_prompt

    @property
    def accepts_input(self) -> bool:
        return self._state.is_running

    def _now(self, now_ms: int | None) -> int:
        return self._clock() if now_ms is None else now_ms

    def _apply(self, updated: MiniGameState) -> MiniGameState:
        if updated.is_complete and not self._state.is_complete:
            logger.info(
                f"Level {self.definition.level_id} complete: "
                f"{updated.correct_count} correct, {updated.incorrect_count} wrong, "
                f"{updated.remaining_ms}ms left"
            )
        self._state = updated
        return updated

    def start(self, now_ms: int | None = None) -> MiniGameState:
        return self._apply(start(self._state, self.definition, self._now(now_ms)))

    def tick(self, now_ms: int | None = None) -> MiniGameState:
        return self._apply(tick(self._state, self.definition, self._now(now_ms)))

    def pause(self, now_ms: int | None = None) -> MiniGameState:
        return self._apply(pause(self._state, self.definition, self._now(now_ms)))

    def resume(self, now_ms: int | None = None) -> MiniGameState:
        return self._apply(resume(self._state, self.definition, self._now(now_ms)))

    def end(self, now_ms: int | None = None) -> MiniGameState:
        return self._apply(end(self._state, self.definition, self._now(now_ms)))

    def submit_intent(self, intent: str, now_ms: int | None = None) -> MiniGameState:
        return self._apply(submit_intent(self._state, self.definition, intent, self._now(now_ms)))

    def apply_match(self, result: IntentMatchResult, now_ms: int | None = None) -> MiniGameState:
        """
        Feed a voice match into the session.

        Results that arrive while the session is not running are stale and
        dropped. Unmatched results never count as mistakes.
        """
        if not self.accepts_input:
            logger.debug(f"Discarding stale match {result.intent} for level {self.definition.level_id}")
            return self._state
        if not result.matched or result.intent is None:
            return self._state
        return self.submit_intent(result.intent, now_ms)

    def report_results(self, now_ms: int | None = None) -> MiniGameResults:
        return report_results(self._state, self.definition, self._now(now_ms))
