"""Query-time retrieval over the vector index.

Turns a free-text query into ranked matches, a confidence score, a
rendered context block for the LLM, and user-facing citations.

Failure policy
--------------
- The query embedding cannot be produced -> the error propagates.  There
  is no meaningful retrieval without a query vector.
- The index query fails -> logged, then treated as zero matches so the
  answer path can still run without retrieved context.  No retry.

Ranking is whatever order the index returns (similarity, descending);
ties keep that order.
"""

from __future__ import annotations

import structlog

from folderlens.interfaces.embedding_provider import IEmbeddingProvider
from folderlens.interfaces.vector_store_provider import IVectorStoreProvider
from folderlens.models.retrieval import RetrievalMatch, RetrievalResult, SourceReference
from folderlens.utils.errors import FolderLensError

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_TOP_K = 5


class RetrievalEngine:
    """Embeds a query, searches the index and assembles the retrieved context.

    Parameters
    ----------
    embedding_provider:
        Must be the same provider that embedded the indexed chunks.
    vector_store:
        The index searched for matches.
    default_top_k:
        Match count used when :meth:`retrieve` is called without *top_k*.
    """

    def __init__(
        self,
        embedding_provider: IEmbeddingProvider,
        vector_store: IVectorStoreProvider,
        default_top_k: int = DEFAULT_TOP_K,
    ) -> None:
        self._embedding_provider = embedding_provider
        self._vector_store = vector_store
        self._default_top_k = max(1, default_top_k)

    async def retrieve(
        self,
        query_text: str,
        top_k: int | None = None,
    ) -> RetrievalResult:
        """Return the best matches for *query_text* and the context built from them.

        Raises
        ------
        FolderLensError
            If the query embedding fails (``RAGError`` or ``RateLimitError``).
        """
        k = top_k if top_k and top_k > 0 else self._default_top_k
        query_vector = await self._embedding_provider.embed_single(query_text)

        try:
            matches = await self._vector_store.query(query_vector, top_k=k)
        except FolderLensError as exc:
            logger.warning("index_query_failed_degrading", error=str(exc))
            matches = []

        result = RetrievalResult(
            matches=matches,
            confidence=matches[0].score if matches else 0.0,
            context_text=self.render_context(matches),
            sources=[self._to_source(match) for match in matches],
        )
        logger.debug(
            "retrieval_complete",
            top_k=k,
            matches=len(matches),
            confidence=round(result.confidence, 4),
        )
        return result

    @staticmethod
    def render_context(matches: list[RetrievalMatch]) -> str:
        """Render matches as ``[title]: text`` blocks, most relevant first."""
        return "\n\n".join(
            f"[{match.metadata.title or 'Document'}]: {match.metadata.text or match.id}"
            for match in matches
        )

    @staticmethod
    def _to_source(match: RetrievalMatch) -> SourceReference:
        meta = match.metadata
        return SourceReference(
            id=match.id,
            title=meta.title or "Untitled Document",
            text=meta.text,
            score=match.score,
            source_file_id=meta.source_file_id,
            chunk_index=meta.chunk_index,
        )
