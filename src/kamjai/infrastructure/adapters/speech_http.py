import logging

import httpx

from kamjai.domain.constants import SPEECH_REQUEST_TIMEOUT
from kamjai.domain.errors import SpeechRecognitionError
from kamjai.domain.ports import SpeechRecognizer


class HttpSpeechRecognizer(SpeechRecognizer):
    """
    Adapter for a remote speech-to-text service.

    POSTs {"locale": ...} to the endpoint and expects {"transcript": "..."}.
    Transport and protocol failures surface as SpeechRecognitionError.
    """

    def __init__(
        self,
        endpoint: str | None,
        timeout: float = SPEECH_REQUEST_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ):
        self.logger = logging.getLogger(__name__)
        self.endpoint = endpoint
        self.timeout = timeout
        self._client = client

    def is_supported(self) -> bool:
        return bool(self.endpoint)

    async def recognize(self, locale: str) -> str:
        if not self.endpoint:
            raise SpeechRecognitionError("No speech endpoint configured")

        # Reuse client
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)

        try:
            resp = await self._client.post(self.endpoint, json={"locale": locale})
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPError as e:
            raise SpeechRecognitionError(f"Speech request failed: {e}") from e
        except ValueError as e:
            raise SpeechRecognitionError(f"Speech response is not JSON: {e}") from e

        if not isinstance(data, dict):
            raise SpeechRecognitionError("Speech response is not an object")
        if data.get("error"):
            raise SpeechRecognitionError(str(data["error"]))
        if "transcript" not in data:
            raise SpeechRecognitionError("Speech response is missing the transcript field")

        transcript = data["transcript"] or ""
        self.logger.debug(f"Recognized {transcript!r} ({locale})")
        return str(transcript)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
