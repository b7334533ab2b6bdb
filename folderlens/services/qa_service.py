"""Question answering over the indexed folder.

Data flow for one question:
  1. RETRIEVE  -- :class:`RetrievalEngine` embeds the question and pulls the
                  top matches.  An index outage leaves the context empty.
  2. GENERATE  -- the retrieved context goes into the system prompt; the
                  conversation history plus the new question go to the LLM.
  3. CLEAN     -- markdown is stripped so the answer reads as plain prose
                  (it is also spoken aloud by the speech endpoint).

Sources and confidence are passed through from retrieval unchanged, so
citations stay in rank order.
"""

from __future__ import annotations

import re

import structlog

from folderlens.interfaces.llm_provider import ILLMProvider
from folderlens.models.retrieval import AskResult, ChatMessage
from folderlens.services.retrieval_service import RetrievalEngine
from folderlens.utils.errors import PipelineError
from folderlens.utils.logging import get_logger

logger: structlog.BoundLogger = get_logger(__name__)

# (pattern, replacement, flags), applied in order.
_MARKDOWN_RULES: tuple[tuple[str, str, int], ...] = (
    (r"^#{1,6}\s+", "", re.MULTILINE),  # headers
    (r"\*\*([^*]+)\*\*", r"\1", 0),  # bold
    (r"\*([^*]+)\*", r"\1", 0),  # italic
    (r"__([^_]+)__", r"\1", 0),
    (r"_([^_]+)_", r"\1", 0),
    (r"```[\s\S]*?```", "", 0),  # fenced code
    (r"`([^`]+)`", r"\1", 0),  # inline code
    (r"\[([^\]]+)\]\([^)]+\)", r"\1", 0),  # links
    (r"^[\s]*[-*+]\s+", "", re.MULTILINE),  # bullet markers
    (r"^\d+\.\s+", "", re.MULTILINE),  # numbered markers
    (r"\n{3,}", "\n\n", 0),
)


def strip_markdown(text: str) -> str:
    """Remove markdown formatting, leaving conversational plain text."""
    for pattern, replacement, flags in _MARKDOWN_RULES:
        text = re.sub(pattern, replacement, text, flags=flags)
    return text.strip()


class QAService:
    """Answers questions about the folder's documents using retrieval + LLM.

    Parameters
    ----------
    retrieval:
        Engine that supplies context, sources and confidence.
    llm:
        Provider used for the answer.
    top_k:
        Matches retrieved per question.
    """

    _SYSTEM_PROMPT = (
        "You are a helpful assistant that answers questions about the documents "
        "in the user's shared folder.\n\n"
        "Guidelines:\n"
        "- Answer in a natural, conversational tone, as if speaking to a colleague\n"
        "- Base your answer on the context below when it is relevant\n"
        "- If the context does not contain the answer, say so plainly and answer "
        "from general knowledge only when it is safe to do so\n"
        "- Do not use markdown formatting, headings or bullet lists\n"
        "- Keep answers concise (a few short paragraphs at most)\n"
    )

    def __init__(
        self,
        retrieval: RetrievalEngine,
        llm: ILLMProvider,
        top_k: int = 5,
    ) -> None:
        self._retrieval = retrieval
        self._llm = llm
        self._top_k = top_k

    async def ask(
        self,
        question: str,
        history: list[ChatMessage] | None = None,
    ) -> AskResult:
        """Answer *question* in the context of the prior conversation turns.

        Raises
        ------
        PipelineError
            If *question* is blank.
        FolderLensError
            If the question cannot be embedded or the LLM call fails.
        """
        if not question or not question.strip():
            raise PipelineError(message="Message is required")

        retrieval = await self._retrieval.retrieve(question, top_k=self._top_k)

        messages = list(history or [])
        messages.append(ChatMessage(role="user", content=question))

        raw_answer = await self._llm.chat(
            messages,
            system_prompt=self._build_system_prompt(retrieval.context_text),
        )
        answer = strip_markdown(raw_answer)

        logger.info(
            "question_answered",
            history_turns=len(messages) - 1,
            context_used=retrieval.context_used,
            sources=len(retrieval.sources),
            confidence=round(retrieval.confidence, 4),
        )
        return AskResult(
            answer=answer,
            context_used=retrieval.context_used,
            sources=retrieval.sources,
            confidence=retrieval.confidence,
        )

    def _build_system_prompt(self, context_text: str) -> str:
        if not context_text:
            return self._SYSTEM_PROMPT + "\nNo relevant documents were found for this question."
        return f"{self._SYSTEM_PROMPT}\nContext from the folder's documents:\n\n{context_text}"
