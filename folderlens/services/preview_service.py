"""Read-only preview of one indexed document.

Re-queries the index for every chunk stored under a source file id and
returns them in sequence order.  Records written by older ingestion runs
under alternate key names are normalised by ``ChunkMetadata.from_raw``
inside the vector store adapter, so filtering here only ever looks at the
canonical ``source_file_id``.
"""

from __future__ import annotations

import structlog

from folderlens.interfaces.vector_store_provider import IVectorStoreProvider
from folderlens.models.retrieval import DocumentPreview, PreviewChunk
from folderlens.utils.errors import PipelineError

logger = structlog.get_logger(logger_name=__name__)


class PreviewService:
    """Projects the stored chunks of one source file, ordered by chunk index."""

    def __init__(self, vector_store: IVectorStoreProvider) -> None:
        self._vector_store = vector_store

    async def preview(self, source_file_id: str) -> DocumentPreview:
        """Return every stored chunk of *source_file_id*, ascending by chunk index.

        Raises
        ------
        PipelineError
            If *source_file_id* is empty.
        RAGError
            If the index cannot be read.
        """
        if not source_file_id:
            raise PipelineError(message="File ID is required")

        records = await self._vector_store.list_by_source(source_file_id)
        own = [r for r in records if r.metadata.source_file_id == source_file_id]
        own.sort(key=lambda r: r.metadata.chunk_index)

        chunks = [
            PreviewChunk(
                id=record.id,
                chunk_index=record.metadata.chunk_index,
                text=record.metadata.text,
                title=record.metadata.title or "Untitled",
                score=record.score,
            )
            for record in own
        ]
        logger.debug(
            "document_preview_built",
            source_file_id=source_file_id,
            chunks=len(chunks),
            dropped=len(records) - len(own),
        )
        return DocumentPreview(source_file_id=source_file_id, chunks=chunks)
