"""Text-to-speech adapters."""

from folderlens.providers.speech.openai_speech_provider import OpenAISpeechProvider

__all__ = ["OpenAISpeechProvider"]
