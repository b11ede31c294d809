"""
Input adapters that turn taps and speech into engine intents.

Voice recognition runs as an asyncio task owned by the adapter. stop()
cancels it, so a result can never be delivered after teardown; the engine
additionally drops results that arrive while it is paused or complete.
"""

import asyncio
import logging
from collections.abc import Sequence

from kamjai.application.intent_matcher import match_spoken_intent
from kamjai.application.session_engine import MiniGameEngine
from kamjai.domain.constants import (
    DEFAULT_SPEECH_LOCALE,
    MATCH_CONFIDENCE_THRESHOLD,
    MAX_EDIT_DISTANCE,
)
from kamjai.domain.errors import SpeechRecognitionError
from kamjai.domain.minigame.models import IntentMatchResult, IntentTarget, MiniGameState
from kamjai.domain.ports import SpeechRecognizer

logger = logging.getLogger(__name__)


class TapInputAdapter:
    """Taps already carry an intent tag; they go straight to the engine."""

    def __init__(self, engine: MiniGameEngine):
        self.engine = engine

    def submit(self, intent: str, now_ms: int | None = None) -> MiniGameState:
        return self.engine.submit_intent(intent, now_ms)


class VoiceInputAdapter:
    """
    Single-shot voice input for one session.

    At most one recognition is in flight; starting another cancels the first.
    """

    def __init__(
        self,
        targets: Sequence[IntentTarget],
        recognizer: SpeechRecognizer | None,
        locale: str = DEFAULT_SPEECH_LOCALE,
        max_edit_distance: int = MAX_EDIT_DISTANCE,
        confidence_threshold: float = MATCH_CONFIDENCE_THRESHOLD,
    ):
        self.targets = list(targets)
        self.recognizer = recognizer
        self.locale = locale
        self.max_edit_distance = max_edit_distance
        self.confidence_threshold = confidence_threshold
        self._task: asyncio.Task[str] | None = None

    def is_supported(self) -> bool:
        return self.recognizer is not None and self.recognizer.is_supported()

    @property
    def is_listening(self) -> bool:
        return self._task is not None and not self._task.done()

    async def listen(self) -> IntentMatchResult | None:
        """
        Capture one utterance and match it against the targets.

        Returns:
            The match result (unmatched on unsupported platforms or recognizer
            failure), or None if stop() cancelled the recognition.
        """
        if not self.is_supported():
            return IntentMatchResult.unmatched()

        self.stop()
        task = asyncio.ensure_future(self.recognizer.recognize(self.locale))
        self._task = task
        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            if self._task is task:
                self._task = None

        if task.cancelled():
            logger.debug("Voice recognition cancelled")
            return None

        error = task.exception()
        if error is not None:
            if isinstance(error, SpeechRecognitionError):
                logger.warning(f"Voice recognition failed: {error}")
                return IntentMatchResult.unmatched()
            raise error

        transcript = task.result().strip()
        return match_spoken_intent(
            transcript,
            self.targets,
            max_edit_distance=self.max_edit_distance,
            confidence_threshold=self.confidence_threshold,
        )

    def stop(self) -> None:
        """Cancel any in-flight recognition."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None


async def submit_voice(
    engine: MiniGameEngine,
    adapter: VoiceInputAdapter,
    now_ms: int | None = None,
) -> tuple[IntentMatchResult | None, MiniGameState]:
    """Listen once and apply the result if the session still accepts input."""
    result = await adapter.listen()
    if result is None:
        return None, engine.state
    return result, engine.apply_match(result, now_ms)
