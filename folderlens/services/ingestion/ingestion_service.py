"""Orchestrator for syncing a remote folder into the vector index.

Per file: **fetch -> extract -> chunk -> embed each chunk -> upsert batch**.

The :class:`IngestionPipeline` is the one place that decides whether a
failure is fatal or recoverable:

- Listing the folder fails  -> fatal, the exception propagates.
- One file fails (fetch, extraction) -> recorded in that file's
  :class:`FileOutcome`; the remaining files still run.
- One chunk's embedding or upsert fails -> logged and skipped; the file
  reports how many of its chunks were stored.  A rejected batch upsert is
  retried one vector at a time.

Files share no mutable state.  Each outcome is written into its own slot
(one per listing position) only after that file's pass has finished, so
the report keeps listing order whatever the concurrency.  Concurrency is
bounded by a semaphore; the default of one file at a time processes files
sequentially in listing order.  An optional deadline abandons unfinished
files while keeping every completed outcome.

All collaborators are injected, so tests substitute in-memory fakes.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog

from folderlens.models.documents import (
    Chunk,
    ChunkMetadata,
    ExtractedDocument,
    IndexedVector,
    SourceFile,
)
from folderlens.models.ingestion import FileOutcome, FileStatus, SyncReport
from folderlens.services.ingestion.chunker import TextChunker
from folderlens.services.ingestion.text_extractor import TextExtractor
from folderlens.utils.concurrency import throttled_gather
from folderlens.utils.errors import FolderLensError, PipelineError

if TYPE_CHECKING:
    from folderlens.interfaces.embedding_provider import IEmbeddingProvider
    from folderlens.interfaces.file_store_provider import IFileStoreProvider
    from folderlens.interfaces.vector_store_provider import IVectorStoreProvider

logger = structlog.get_logger(logger_name=__name__)

EMPTY_FILE_DETAIL = "File is empty (0 bytes)"
NO_TEXT_DETAIL = "No text extracted"
NO_CHUNKS_DETAIL = "No valid chunks created"
ABANDONED_ERROR = "Sync deadline exceeded before this file finished"


class IngestionPipeline:
    """Syncs source files into the vector index with two-level failure isolation.

    Parameters
    ----------
    file_store:
        Lists folders and fetches file bytes.
    embedding_provider:
        Generates one vector per chunk.
    vector_store:
        Receives the per-file batch of vectors.
    chunker:
        Splits extracted text; defaults to a 2000/200/20 chunker.
    extractor:
        Converts bytes to text; defaults to :class:`TextExtractor`.
    max_concurrent_files:
        Files processed at once.  ``1`` means sequential, in listing order.
    max_concurrent_chunks:
        Embedding calls in flight for one file.
    """

    def __init__(
        self,
        file_store: IFileStoreProvider,
        embedding_provider: IEmbeddingProvider,
        vector_store: IVectorStoreProvider,
        chunker: TextChunker | None = None,
        extractor: TextExtractor | None = None,
        max_concurrent_files: int = 1,
        max_concurrent_chunks: int = 4,
    ) -> None:
        self._file_store = file_store
        self._embedding_provider = embedding_provider
        self._vector_store = vector_store
        self._chunker = chunker or TextChunker()
        self._extractor = extractor or TextExtractor()
        self._max_concurrent_files = max(1, max_concurrent_files)
        self._max_concurrent_chunks = max(1, max_concurrent_chunks)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def sync(self, folder_id: str, timeout: float | None = None) -> SyncReport:
        """List *folder_id* and ingest every file in it.

        Parameters
        ----------
        folder_id:
            Remote folder to sync.
        timeout:
            Overall deadline in seconds for processing the listed files.
            ``None`` waits for every file.

        Raises
        ------
        PipelineError
            If *folder_id* is empty.
        FolderLensError
            Any listing failure (auth, not found, store error) is fatal.
        """
        if not folder_id:
            raise PipelineError(message="Folder ID is required")

        files = await self._file_store.list_files(folder_id)
        logger.info("sync_files_listed", folder_id=folder_id, file_count=len(files))
        return await self.ingest_files(files, timeout=timeout)

    async def ingest_files(
        self,
        files: list[SourceFile],
        timeout: float | None = None,
    ) -> SyncReport:
        """Ingest *files* and return one outcome per file, in input order."""
        started_at = datetime.now(timezone.utc)
        slots: list[FileOutcome | None] = [None] * len(files)
        semaphore = asyncio.Semaphore(self._max_concurrent_files)

        async def _run(position: int, source: SourceFile) -> None:
            async with semaphore:
                slots[position] = await self.ingest_file(source)

        tasks = [asyncio.create_task(_run(i, f)) for i, f in enumerate(files)]
        deadline_exceeded = False
        try:
            if tasks:
                _, pending = await asyncio.wait(tasks, timeout=timeout)
                if pending:
                    deadline_exceeded = True
                    for task in pending:
                        task.cancel()
                    await asyncio.gather(*pending, return_exceptions=True)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            raise

        per_file = [
            slot if slot is not None else self._abandoned(source)
            for slot, source in zip(slots, files)
        ]
        report = SyncReport(
            per_file=per_file,
            total_chunks=sum(outcome.chunks for outcome in per_file),
            started_at=started_at,
            finished_at=datetime.now(timezone.utc),
            deadline_exceeded=deadline_exceeded,
        )

        logger.info(
            "sync_complete",
            total_files=report.total_files,
            total_chunks=report.total_chunks,
            files_failed=report.files_failed,
            deadline_exceeded=deadline_exceeded,
        )
        return report

    async def ingest_file(self, source: SourceFile) -> FileOutcome:
        """Run the full pipeline for one file.  Never raises for file-level failures."""
        log = logger.bind(file_id=source.id, file_name=source.name)
        try:
            data = await self._file_store.fetch_bytes(source.id, source.content_type)
            log.debug("file_downloaded", bytes=len(data))
            if not data:
                log.warning("file_empty")
                return self._outcome(source, FileStatus.EMPTY, detail=EMPTY_FILE_DETAIL)

            text = self._extractor.extract(data, source.content_type)
            if not text.strip():
                log.warning("file_no_text_extracted", content_type=source.content_type)
                return self._outcome(source, FileStatus.NO_TEXT, detail=NO_TEXT_DETAIL)

            chunks = self._chunker.chunk_document(
                ExtractedDocument(source_file_id=source.id, text=text)
            )
            if not chunks:
                log.warning("file_no_valid_chunks", text_length=len(text))
                return self._outcome(source, FileStatus.NO_CHUNKS, detail=NO_CHUNKS_DETAIL)

            vectors, last_error = await self._embed_chunks(source, chunks)
            if not vectors:
                return self._outcome(
                    source,
                    FileStatus.FAILED,
                    attempted=len(chunks),
                    error=f"All {len(chunks)} chunk embeddings failed: {last_error}",
                )

            stored, upsert_error = await self._store_vectors(source, vectors)
            if not stored:
                return self._outcome(
                    source,
                    FileStatus.FAILED,
                    attempted=len(chunks),
                    error=f"All {len(vectors)} chunk upserts failed: {upsert_error}",
                )
        except FolderLensError as exc:
            log.error("file_ingestion_failed", error=str(exc))
            return self._outcome(source, FileStatus.FAILED, error=str(exc))
        except Exception as exc:  # noqa: BLE001
            log.exception("file_ingestion_unexpected_error")
            return self._outcome(
                source, FileStatus.FAILED, error=str(exc) or type(exc).__name__
            )

        status = FileStatus.INDEXED if stored == len(chunks) else FileStatus.PARTIAL
        log.info("file_ingested", chunks=stored, attempted_chunks=len(chunks))
        return self._outcome(
            source,
            status,
            chunks=stored,
            attempted=len(chunks),
            detail=f"{stored}/{len(chunks)} chunks stored",
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _embed_chunks(
        self,
        source: SourceFile,
        chunks: list[Chunk],
    ) -> tuple[list[IndexedVector], str | None]:
        """Embed each chunk independently; failed chunks are skipped."""
        results = await throttled_gather(
            [self._embedding_provider.embed_single(chunk.text) for chunk in chunks],
            limit=self._max_concurrent_chunks,
        )

        vectors: list[IndexedVector] = []
        last_error: str | None = None
        for chunk, result in zip(chunks, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                last_error = str(result) or type(result).__name__
                logger.warning(
                    "chunk_embedding_failed",
                    file_id=source.id,
                    chunk_index=chunk.index,
                    error=last_error,
                )
                continue
            vectors.append(
                IndexedVector(
                    id=chunk.vector_id,
                    values=result,
                    metadata=ChunkMetadata(
                        source_file_id=source.id,
                        title=source.name,
                        text=chunk.text,
                        chunk_index=chunk.index,
                        content_type=source.content_type,
                    ),
                )
            )
        return vectors, last_error

    async def _store_vectors(
        self,
        source: SourceFile,
        vectors: list[IndexedVector],
    ) -> tuple[int, str | None]:
        """Upsert *vectors* in one batch, falling back to one call per vector.

        Returns the number of vectors stored and the last index error seen.
        """
        try:
            return await self._vector_store.upsert(vectors), None
        except FolderLensError as exc:
            if len(vectors) == 1:
                logger.warning("chunk_upsert_failed", file_id=source.id, error=str(exc))
                return 0, str(exc)
            logger.warning(
                "batch_upsert_failed_retrying_per_chunk",
                file_id=source.id,
                vectors=len(vectors),
                error=str(exc),
            )

        stored = 0
        last_error: str | None = None
        for vector in vectors:
            try:
                stored += await self._vector_store.upsert([vector])
            except FolderLensError as exc:
                last_error = str(exc)
                logger.warning(
                    "chunk_upsert_failed",
                    file_id=source.id,
                    vector_id=vector.id,
                    error=last_error,
                )
        return stored, last_error

    @staticmethod
    def _outcome(
        source: SourceFile,
        status: FileStatus,
        chunks: int = 0,
        attempted: int = 0,
        error: str | None = None,
        detail: str | None = None,
    ) -> FileOutcome:
        return FileOutcome(
            file_id=source.id,
            name=source.name,
            status=status,
            chunks=chunks,
            attempted_chunks=attempted,
            error=error,
            detail=detail,
        )

    @staticmethod
    def _abandoned(source: SourceFile) -> FileOutcome:
        logger.warning("file_abandoned_at_deadline", file_id=source.id, file_name=source.name)
        return FileOutcome(
            file_id=source.id,
            name=source.name,
            status=FileStatus.ABANDONED,
            error=ABANDONED_ERROR,
        )
