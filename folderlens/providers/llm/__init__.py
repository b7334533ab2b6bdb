"""LLM provider adapters.

OpenAILLMProvider implements ILLMProvider (folderlens/interfaces/llm_provider.py)
against OpenAI or any OpenAI-compatible gateway.  main.py creates it when
OPENAI_API_KEY is set and injects it into FastAPI's app.state.
"""

from folderlens.providers.llm.openai_provider import OpenAILLMProvider

__all__ = ["OpenAILLMProvider"]
