"""Audio transcription adapters."""

from folderlens.providers.transcription.whisper_api_provider import WhisperAPIProvider

__all__ = ["WhisperAPIProvider"]
