"""Unit tests for IngestionPipeline: per-file and per-chunk failure isolation."""

from __future__ import annotations

import asyncio

import pytest

from folderlens.models.documents import SourceFile
from folderlens.models.ingestion import FileStatus
from folderlens.services.ingestion.chunker import TextChunker
from folderlens.services.ingestion.ingestion_service import (
    ABANDONED_ERROR,
    EMPTY_FILE_DETAIL,
    NO_CHUNKS_DETAIL,
    NO_TEXT_DETAIL,
    IngestionPipeline,
)
from folderlens.utils.errors import AuthError, FileStoreError, PipelineError
from tests.conftest import MockEmbeddingProvider, MockFileStore, MockVectorStore

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_PARAGRAPHS = [
    "Students submit assignments through the course page before the deadline.",
    "Late submissions lose ten percent per day unless an extension was granted.",
    "Grades are released within two weeks of the submission deadline.",
]


def _text(*paragraphs: str) -> bytes:
    return "\n\n".join(paragraphs).encode()


def _source(file_id: str, content_type: str = "text/plain") -> SourceFile:
    return SourceFile(id=file_id, name=f"{file_id}.txt", content_type=content_type)


def _pipeline(
    store: MockFileStore,
    embedding: MockEmbeddingProvider | None = None,
    index: MockVectorStore | None = None,
    **kwargs,
) -> IngestionPipeline:
    return IngestionPipeline(
        file_store=store,
        embedding_provider=embedding or MockEmbeddingProvider(),
        vector_store=index or MockVectorStore(),
        chunker=TextChunker(max_size=200, overlap=20, min_length=20),
        **kwargs,
    )


class _SlowFileStore(MockFileStore):
    """Delays fetches of the listed file ids."""

    def __init__(self, *args, slow_ids: set[str], delay: float = 5.0, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.slow_ids = slow_ids
        self.delay = delay

    async def fetch_bytes(self, file_id: str, content_type: str) -> bytes:
        if file_id in self.slow_ids:
            await asyncio.sleep(self.delay)
        return await super().fetch_bytes(file_id, content_type)


# ---------------------------------------------------------------------------
# Sync
# ---------------------------------------------------------------------------


class TestSync:
    @pytest.mark.asyncio
    async def test_extraction_failure_isolated(self) -> None:
        store = MockFileStore(
            files=[_source("f1"), _source("f2", "application/pdf"), _source("f3")],
            contents={
                "f1": _text(*_PARAGRAPHS[:2]),
                "f2": b"this is not a pdf",
                "f3": _text(_PARAGRAPHS[2]),
            },
        )
        index = MockVectorStore()

        report = await _pipeline(store, index=index).sync("folder-1")

        assert [o.file_id for o in report.per_file] == ["f1", "f2", "f3"]
        failed = report.per_file[1]
        assert failed.status == FileStatus.FAILED
        assert failed.chunks == 0
        assert failed.error
        assert report.total_chunks == 3
        assert report.files_failed == 1
        assert len(index.records) == 3

    @pytest.mark.asyncio
    async def test_resync_overwrites_vectors(self) -> None:
        store = MockFileStore(files=[_source("f1")], contents={"f1": _text(*_PARAGRAPHS)})
        index = MockVectorStore()
        pipeline = _pipeline(store, index=index)

        first = await pipeline.sync("folder-1")
        second = await pipeline.sync("folder-1")

        assert first.total_chunks == second.total_chunks == 3
        assert sorted(index.records) == ["f1-chunk-0", "f1-chunk-1", "f1-chunk-2"]

    @pytest.mark.asyncio
    async def test_empty_folder_id_rejected(self) -> None:
        with pytest.raises(PipelineError):
            await _pipeline(MockFileStore()).sync("")

    @pytest.mark.asyncio
    async def test_listing_error_propagates(self) -> None:
        store = MockFileStore()
        store.list_error = AuthError(message="invalid_grant", provider_name="mock")

        with pytest.raises(FileStoreError):
            await _pipeline(store).sync("folder-1")

    @pytest.mark.asyncio
    async def test_empty_folder(self) -> None:
        report = await _pipeline(MockFileStore()).sync("folder-1")

        assert report.per_file == []
        assert report.total_chunks == 0
        assert report.summary_message() == "No files found in the folder"

    @pytest.mark.asyncio
    async def test_metadata_written(self) -> None:
        store = MockFileStore(files=[_source("f1")], contents={"f1": _text(_PARAGRAPHS[0])})
        index = MockVectorStore()

        await _pipeline(store, index=index).sync("folder-1")

        metadata = index.records["f1-chunk-0"].metadata
        assert metadata.source_file_id == "f1"
        assert metadata.title == "f1.txt"
        assert metadata.text == _PARAGRAPHS[0]
        assert metadata.chunk_index == 0
        assert metadata.content_type == "text/plain"

    @pytest.mark.asyncio
    async def test_concurrent_files_keep_listing_order(self) -> None:
        files = [_source(f"f{i}") for i in range(6)]
        store = MockFileStore(
            files=files, contents={f.id: _text(_PARAGRAPHS[0]) for f in files}
        )

        report = await _pipeline(store, max_concurrent_files=3).sync("folder-1")

        assert [o.file_id for o in report.per_file] == [f.id for f in files]
        assert report.total_chunks == 6


# ---------------------------------------------------------------------------
# Per-file outcomes
# ---------------------------------------------------------------------------


class TestFileOutcomes:
    @pytest.mark.asyncio
    async def test_empty_file(self) -> None:
        store = MockFileStore(files=[_source("f1")], contents={"f1": b""})

        outcome = (await _pipeline(store).sync("folder-1")).per_file[0]

        assert outcome.status == FileStatus.EMPTY
        assert outcome.detail == EMPTY_FILE_DETAIL
        assert outcome.error is None
        assert not outcome.is_failure

    @pytest.mark.asyncio
    async def test_whitespace_only_file(self) -> None:
        store = MockFileStore(files=[_source("f1")], contents={"f1": b"  \n\n\t "})

        outcome = (await _pipeline(store).sync("folder-1")).per_file[0]

        assert outcome.status == FileStatus.NO_TEXT
        assert outcome.detail == NO_TEXT_DETAIL

    @pytest.mark.asyncio
    async def test_text_below_min_length(self) -> None:
        store = MockFileStore(files=[_source("f1")], contents={"f1": b"tiny note"})

        report = await _pipeline(store).sync("folder-1")

        outcome = report.per_file[0]
        assert outcome.status == FileStatus.NO_CHUNKS
        assert outcome.detail == NO_CHUNKS_DETAIL
        assert report.summary_message().startswith("No chunks were created.")

    @pytest.mark.asyncio
    async def test_fetch_failure(self) -> None:
        store = MockFileStore(
            files=[_source("f1"), _source("f2")],
            contents={
                "f1": FileStoreError(message="download failed", provider_name="mock"),
                "f2": _text(_PARAGRAPHS[0]),
            },
        )

        report = await _pipeline(store).sync("folder-1")

        assert report.per_file[0].status == FileStatus.FAILED
        assert "download failed" in report.per_file[0].error
        assert report.per_file[1].status == FileStatus.INDEXED

    @pytest.mark.asyncio
    async def test_unexpected_exception_recorded(self) -> None:
        store = MockFileStore(
            files=[_source("f1")], contents={"f1": RuntimeError("socket closed")}
        )

        outcome = (await _pipeline(store).sync("folder-1")).per_file[0]

        assert outcome.status == FileStatus.FAILED
        assert outcome.error == "socket closed"

    @pytest.mark.asyncio
    async def test_partial_chunk_failure(self) -> None:
        store = MockFileStore(files=[_source("f1")], contents={"f1": _text(*_PARAGRAPHS)})
        embedding = MockEmbeddingProvider(fail_on={_PARAGRAPHS[1]})
        index = MockVectorStore()

        outcome = (await _pipeline(store, embedding, index).sync("folder-1")).per_file[0]

        assert outcome.status == FileStatus.PARTIAL
        assert outcome.chunks == 2
        assert outcome.attempted_chunks == 3
        assert outcome.detail == "2/3 chunks stored"
        assert sorted(index.records) == ["f1-chunk-0", "f1-chunk-2"]

    @pytest.mark.asyncio
    async def test_all_chunks_fail(self) -> None:
        store = MockFileStore(files=[_source("f1")], contents={"f1": _text(*_PARAGRAPHS[:2])})
        embedding = MockEmbeddingProvider(fail_on=set(_PARAGRAPHS))
        index = MockVectorStore()

        outcome = (await _pipeline(store, embedding, index).sync("folder-1")).per_file[0]

        assert outcome.status == FileStatus.FAILED
        assert outcome.error.startswith("All 2 chunk embeddings failed:")
        assert index.upsert_calls == 0

    @pytest.mark.asyncio
    async def test_upsert_failure_fails_file(self) -> None:
        store = MockFileStore(
            files=[_source("f1"), _source("f2")],
            contents={"f1": _text(_PARAGRAPHS[0]), "f2": _text(_PARAGRAPHS[1])},
        )
        index = MockVectorStore()
        index.fail_upsert = True

        report = await _pipeline(store, index=index).sync("folder-1")

        assert [o.status for o in report.per_file] == [FileStatus.FAILED, FileStatus.FAILED]
        assert [o.attempted_chunks for o in report.per_file] == [1, 1]
        assert report.per_file[0].error.startswith("All 1 chunk upserts failed:")
        assert report.total_chunks == 0
        assert index.upsert_calls == 2

    @pytest.mark.asyncio
    async def test_rejected_chunk_does_not_fail_file(self) -> None:
        store = MockFileStore(files=[_source("f1")], contents={"f1": _text(*_PARAGRAPHS)})
        index = MockVectorStore()
        index.reject_ids = {"f1-chunk-1"}

        outcome = (await _pipeline(store, index=index).sync("folder-1")).per_file[0]

        assert outcome.status == FileStatus.PARTIAL
        assert outcome.chunks == 2
        assert outcome.attempted_chunks == 3
        assert outcome.error is None
        assert sorted(index.records) == ["f1-chunk-0", "f1-chunk-2"]
        # One rejected batch, then one call per vector.
        assert index.upsert_calls == 4

    @pytest.mark.asyncio
    async def test_every_chunk_upsert_rejected(self) -> None:
        store = MockFileStore(files=[_source("f1")], contents={"f1": _text(*_PARAGRAPHS)})
        index = MockVectorStore()
        index.fail_upsert = True

        outcome = (await _pipeline(store, index=index).sync("folder-1")).per_file[0]

        assert outcome.status == FileStatus.FAILED
        assert outcome.chunks == 0
        assert outcome.attempted_chunks == 3
        assert outcome.error == "All 3 chunk upserts failed: [mock] index write rejected"


# ---------------------------------------------------------------------------
# Deadline
# ---------------------------------------------------------------------------


class TestDeadline:
    @pytest.mark.asyncio
    async def test_unfinished_files_abandoned(self) -> None:
        files = [_source("fast"), _source("slow")]
        store = _SlowFileStore(
            files=files,
            contents={"fast": _text(_PARAGRAPHS[0]), "slow": _text(_PARAGRAPHS[1])},
            slow_ids={"slow"},
        )

        report = await _pipeline(store, max_concurrent_files=2).sync("folder-1", timeout=0.2)

        assert report.deadline_exceeded
        fast, slow = report.per_file
        assert fast.status == FileStatus.INDEXED
        assert slow.status == FileStatus.ABANDONED
        assert slow.error == ABANDONED_ERROR
        assert report.total_chunks == 1
        assert report.files_failed == 1

    @pytest.mark.asyncio
    async def test_no_deadline_waits_for_all(self) -> None:
        store = _SlowFileStore(
            files=[_source("f1")],
            contents={"f1": _text(_PARAGRAPHS[0])},
            slow_ids={"f1"},
            delay=0.05,
        )

        report = await _pipeline(store).sync("folder-1")

        assert not report.deadline_exceeded
        assert report.per_file[0].status == FileStatus.INDEXED
