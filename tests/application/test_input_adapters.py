import asyncio
import logging

import pytest

from kamjai.application.input_adapters import TapInputAdapter, VoiceInputAdapter, submit_voice
from kamjai.application.session_engine import MiniGameEngine
from kamjai.domain.errors import SpeechRecognitionError
from kamjai.domain.minigame.models import MatchMethod
from kamjai.domain.ports import SpeechRecognizer


class FakeRecognizer(SpeechRecognizer):
    def __init__(self, transcript: str = "", supported: bool = True, error: Exception | None = None):
        self.transcript = transcript
        self.supported = supported
        self.error = error
        self.calls: list[str] = []

    def is_supported(self) -> bool:
        return self.supported

    async def recognize(self, locale: str) -> str:
        self.calls.append(locale)
        if self.error is not None:
            raise self.error
        return self.transcript


class BlockingRecognizer(FakeRecognizer):
    """First call waits until released; later calls answer immediately."""

    def __init__(self, transcript: str = ""):
        super().__init__(transcript)
        self.release = asyncio.Event()

    async def recognize(self, locale: str) -> str:
        self.calls.append(locale)
        if len(self.calls) == 1:
            await self.release.wait()
        return self.transcript


async def _settle():
    # let the recognition task reach its first await
    for _ in range(3):
        await asyncio.sleep(0)


@pytest.fixture
def engine(level_one_definition):
    engine = MiniGameEngine(level_one_definition)
    engine.start(now_ms=0)
    return engine


# ---------- Tap ----------


def test_tap_submits_intent(engine):
    tap = TapInputAdapter(engine)
    state = tap.submit(engine.current_prompt.intent, now_ms=1_000)
    assert state.correct_count == 1


# ---------- Voice ----------


@pytest.mark.asyncio
async def test_no_recognizer_is_unsupported(greeting_targets):
    adapter = VoiceInputAdapter(greeting_targets, recognizer=None)
    result = await adapter.listen()
    assert adapter.is_supported() is False
    assert result.matched is False
    assert result.method == MatchMethod.NONE


@pytest.mark.asyncio
async def test_unsupported_recognizer_is_not_called(greeting_targets):
    recognizer = FakeRecognizer("sawatdi", supported=False)
    adapter = VoiceInputAdapter(greeting_targets, recognizer)

    result = await adapter.listen()

    assert result.matched is False
    assert recognizer.calls == []


@pytest.mark.asyncio
async def test_transcript_is_matched(greeting_targets):
    recognizer = FakeRecognizer("  sawatdi khrap ")
    adapter = VoiceInputAdapter(greeting_targets, recognizer, locale="th-TH")

    result = await adapter.listen()

    assert result.matched is True
    assert result.intent == "INTENT_HELLO_1"
    assert recognizer.calls == ["th-TH"]
    assert adapter.is_listening is False


@pytest.mark.asyncio
async def test_adapter_thresholds_are_applied(greeting_targets):
    adapter = VoiceInputAdapter(greeting_targets, FakeRecognizer("sawatdee"), confidence_threshold=0.9)
    result = await adapter.listen()
    assert result.matched is False


@pytest.mark.asyncio
async def test_recognition_error_yields_unmatched(greeting_targets, caplog):
    recognizer = FakeRecognizer(error=SpeechRecognitionError("mic busy"))
    adapter = VoiceInputAdapter(greeting_targets, recognizer)

    with caplog.at_level(logging.WARNING):
        result = await adapter.listen()

    assert result.matched is False
    assert result.method == MatchMethod.NONE
    assert "mic busy" in caplog.text


@pytest.mark.asyncio
async def test_unexpected_error_propagates(greeting_targets):
    adapter = VoiceInputAdapter(greeting_targets, FakeRecognizer(error=RuntimeError("boom")))
    with pytest.raises(RuntimeError, match="boom"):
        await adapter.listen()


@pytest.mark.asyncio
async def test_stop_cancels_pending_recognition(greeting_targets):
    recognizer = BlockingRecognizer("sawatdi")
    adapter = VoiceInputAdapter(greeting_targets, recognizer)

    pending = asyncio.create_task(adapter.listen())
    await _settle()
    assert adapter.is_listening is True

    adapter.stop()

    assert await pending is None
    assert adapter.is_listening is False


@pytest.mark.asyncio
async def test_new_listen_cancels_previous(greeting_targets):
    recognizer = BlockingRecognizer("sawatdi")
    adapter = VoiceInputAdapter(greeting_targets, recognizer)

    first = asyncio.create_task(adapter.listen())
    await _settle()
    second = await adapter.listen()

    assert await first is None
    assert second.matched is True
    assert len(recognizer.calls) == 2


@pytest.mark.asyncio
async def test_cancelling_listener_cancels_recognition(greeting_targets):
    recognizer = BlockingRecognizer("sawatdi")
    adapter = VoiceInputAdapter(greeting_targets, recognizer)

    pending = asyncio.create_task(adapter.listen())
    await _settle()
    pending.cancel()

    with pytest.raises(asyncio.CancelledError):
        await pending
    assert adapter.is_listening is False


def test_stop_without_pending_is_safe(greeting_targets):
    adapter = VoiceInputAdapter(greeting_targets, FakeRecognizer())
    adapter.stop()
    assert adapter.is_listening is False


# ---------- Voice -> Engine ----------


@pytest.mark.asyncio
async def test_submit_voice_applies_match(engine):
    adapter = VoiceInputAdapter(engine.definition.intent_map, FakeRecognizer("sawatdi"))

    result, state = await submit_voice(engine, adapter, now_ms=1_000)

    assert result.matched is True
    assert state.correct_count == 1


@pytest.mark.asyncio
async def test_submit_voice_discards_result_when_paused(engine):
    adapter = VoiceInputAdapter(engine.definition.intent_map, FakeRecognizer("sawatdi"))
    engine.pause(now_ms=500)

    result, state = await submit_voice(engine, adapter, now_ms=1_000)

    assert result.matched is True
    assert state.correct_count == 0
    assert state.used_intents == ()


@pytest.mark.asyncio
async def test_submit_voice_after_stop_leaves_state(engine):
    adapter = VoiceInputAdapter(engine.definition.intent_map, BlockingRecognizer("sawatdi"))
    before = engine.state

    pending = asyncio.create_task(submit_voice(engine, adapter, now_ms=1_000))
    await _settle()
    adapter.stop()

    result, state = await pending
    assert result is None
    assert state is before
