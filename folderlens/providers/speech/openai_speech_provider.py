"""OpenAI text-to-speech provider.

Reads answers aloud: ``audio.speech.create`` returns MP3 bytes that the
API streams back as ``audio/mpeg``.
"""

from __future__ import annotations

import openai
import structlog

from folderlens.interfaces.transcription_provider import ISpeechProvider
from folderlens.utils.errors import AcquisitionError, PipelineError

logger = structlog.get_logger(logger_name=__name__)

# The speech endpoint rejects inputs longer than this.
MAX_INPUT_CHARS = 4096


class OpenAISpeechProvider(ISpeechProvider):
    """Text-to-speech via the OpenAI audio API (``tts-1`` / ``nova`` by default)."""

    def __init__(
        self,
        api_key: str,
        model: str = "tts-1",
        voice: str = "nova",
        client: openai.AsyncOpenAI | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._voice = voice
        self._client = client or openai.AsyncOpenAI(api_key=api_key or "unset")

    async def synthesize(self, text: str) -> bytes:
        if not text or not text.strip():
            raise PipelineError(message="Text is required")

        try:
            response = await self._client.audio.speech.create(
                model=self._model,
                voice=self._voice,
                input=text[:MAX_INPUT_CHARS],
            )
        except openai.APIError as exc:
            raise AcquisitionError(
                message=f"Speech synthesis failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        audio = response.content
        logger.debug("speech_synthesized", chars=len(text), bytes=len(audio))
        return audio

    def get_provider_name(self) -> str:
        return "openai_tts"

    def is_available(self) -> bool:
        return bool(self._api_key)
