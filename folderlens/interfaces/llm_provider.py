"""Abstract base class for LLM service providers.

Two call shapes are needed: single-shot ``complete`` (content review
analysis) and multi-turn ``chat`` (question answering over conversation
history).  Implementations may wrap OpenAI or any compatible gateway.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from folderlens.models.retrieval import ChatMessage


# Concrete implementation: OpenAILLMProvider (folderlens/providers/llm/)
class ILLMProvider(ABC):
    """Contract for answer and analysis generation."""

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 4000,
    ) -> str:
        """Generate a text completion from the model.

        Parameters
        ----------
        system_prompt:
            The system/instruction message that sets the model's behaviour.
        user_prompt:
            The prompt containing the actual request or data.
        temperature:
            Sampling temperature (0.0 = deterministic, 1.0 = creative).
        max_tokens:
            Upper bound on the number of tokens in the response.

        Returns
        -------
        str
            The model's text response.

        Raises
        ------
        folderlens.utils.errors.LLMError
            If the API call fails or returns an empty response.
        folderlens.utils.errors.RateLimitError
            If the API rejects the call for rate reasons.
        """

    @abstractmethod
    async def chat(
        self,
        messages: list[ChatMessage],
        system_prompt: str = "",
        temperature: float = 0.7,
        max_tokens: int = 2000,
    ) -> str:
        """Generate the next assistant turn for *messages*.

        The system prompt, when given, is sent ahead of the history and is
        where callers place retrieved context.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"openai-gpt-4o-mini"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if credentials are present."""
