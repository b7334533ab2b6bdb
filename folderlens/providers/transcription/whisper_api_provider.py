"""OpenAI Whisper API transcription provider.

# ─── CLOUD TRANSCRIPTION ────────────────────────────────────────────
#
# Used by the video transcript workflow to turn downloaded audio into
# text that is written back to the source folder.
#
# Max file size: 25 MB per request.
# Supported formats: mp3, mp4, mpeg, mpga, m4a, wav, webm.
#
# The API handles all preprocessing internally; no ffmpeg needed here.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from pathlib import Path

import openai
import structlog

from folderlens.interfaces.transcription_provider import (
    ITranscriptionProvider,
    TranscriptionResult,
)
from folderlens.utils.errors import AcquisitionError

logger = structlog.get_logger(logger_name=__name__)


class WhisperAPIProvider(ITranscriptionProvider):
    """Transcription via the OpenAI Whisper API.

    Parameters
    ----------
    api_key:
        OpenAI API key.  Required for authentication.
    model:
        Whisper model name (``OPENAI_WHISPER_MODEL``).
    client:
        Pre-built async client; one is created from *api_key* if omitted.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "whisper-1",
        client: openai.AsyncOpenAI | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._client = client or openai.AsyncOpenAI(api_key=api_key or "unset")

    async def transcribe(
        self,
        audio_path: str,
        language: str | None = "en",
    ) -> TranscriptionResult:
        """Transcribe audio using the OpenAI Whisper API."""
        audio_file = Path(audio_path)
        kwargs: dict = {"model": self._model}
        if language:
            kwargs["language"] = language

        try:
            with open(audio_file, "rb") as f:
                response = await self._client.audio.transcriptions.create(file=f, **kwargs)
        except OSError as exc:
            raise AcquisitionError(
                message=f"Cannot read audio file {audio_file.name}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except openai.PermissionDeniedError as exc:
            raise AcquisitionError(
                message=(
                    "Your OpenAI project does not have access to the Whisper API. "
                    f"Check the account's API access settings. Error: {exc}"
                ),
                provider_name=self.get_provider_name(),
            ) from exc
        except openai.APIError as exc:
            raise AcquisitionError(
                message=f"Failed to transcribe audio: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        duration = getattr(response, "duration", 0.0) or 0.0
        detected_language = getattr(response, "language", None) or language or "en"
        logger.info(
            "whisper_api_transcription_complete",
            model=self._model,
            chars=len(response.text),
            language=detected_language,
        )
        return TranscriptionResult(
            text=response.text,
            language=detected_language,
            duration_seconds=duration,
        )

    def get_provider_name(self) -> str:
        return "whisper_api"

    def is_available(self) -> bool:
        return bool(self._api_key)
