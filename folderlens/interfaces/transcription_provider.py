"""Abstract base classes for audio transcription and speech synthesis.

Transcription turns downloaded audio into text that is written back to
the file store and picked up by the next sync; speech synthesis reads
answers aloud.  Both wrap a cloud audio API behind a small contract.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel, ConfigDict, Field


class TranscriptionResult(BaseModel):
    """Immutable result from an audio transcription."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(description="Full transcribed text.")
    language: str = Field(default="en", description="Detected or specified language code.")
    duration_seconds: float = Field(default=0.0, description="Audio duration in seconds.")


class ITranscriptionProvider(ABC):
    """Contract for audio transcription backends."""

    @abstractmethod
    async def transcribe(
        self,
        audio_path: str,
        language: str | None = "en",
    ) -> TranscriptionResult:
        """Transcribe an audio file to text.

        Parameters
        ----------
        audio_path:
            Path to the audio file on disk.
        language:
            Optional ISO 639-1 language code.  ``None`` lets the backend
            auto-detect.

        Raises
        ------
        folderlens.utils.errors.AcquisitionError
            If the backend rejects the audio or the call fails.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable name for this provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return True if the provider is ready to accept transcription requests."""


class ISpeechProvider(ABC):
    """Contract for text-to-speech backends."""

    @abstractmethod
    async def synthesize(self, text: str) -> bytes:
        """Return ``audio/mpeg`` bytes speaking *text*."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable name for this provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return True if credentials are configured."""
