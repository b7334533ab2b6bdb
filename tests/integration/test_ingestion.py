"""Integration tests for the sync -> retrieve -> preview -> answer flow.

Runs the real chunker, extractor, ingestion pipeline and query services
against the in-memory fakes from conftest (no network, no API keys).
"""

from __future__ import annotations

import pytest

from folderlens.models.documents import SourceFile
from folderlens.models.ingestion import FileStatus
from folderlens.services.ingestion.chunker import TextChunker
from folderlens.services.ingestion.ingestion_service import IngestionPipeline
from folderlens.services.preview_service import PreviewService
from folderlens.services.qa_service import QAService
from folderlens.services.retrieval_service import RetrievalEngine
from tests.conftest import (
    MockEmbeddingProvider,
    MockFileStore,
    MockLLMProvider,
    MockVectorStore,
)

# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

_PARAGRAPHS = [
    "Week one covers the course outline and grading policy.",
    "Week two introduces the reading list for the first unit.",
    "The final exam takes place in the main hall on May 12.",
]
_HTML = b"<html><body><p>Office hours run every Tuesday afternoon in room 204.</p></body></html>"


def _folder() -> MockFileStore:
    return MockFileStore(
        files=[
            SourceFile(id="syllabus", name="Syllabus.txt"),
            SourceFile(id="hours", name="Office Hours.html", content_type="text/html"),
            SourceFile(id="blank", name="Blank.txt"),
        ],
        contents={
            "syllabus": "\n\n".join(_PARAGRAPHS).encode(),
            "hours": _HTML,
            "blank": b"",
        },
    )


def _pipeline(store: MockFileStore, embedding: MockEmbeddingProvider, index: MockVectorStore) -> IngestionPipeline:
    return IngestionPipeline(
        file_store=store,
        embedding_provider=embedding,
        vector_store=index,
        chunker=TextChunker(max_size=200, overlap=20),
    )


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestFolderToAnswer:
    @pytest.mark.asyncio
    async def test_sync_indexes_every_usable_file(self) -> None:
        embedding, index = MockEmbeddingProvider(), MockVectorStore()

        report = await _pipeline(_folder(), embedding, index).sync("folder-1")

        statuses = {o.file_id: o.status for o in report.per_file}
        assert statuses == {
            "syllabus": FileStatus.INDEXED,
            "hours": FileStatus.INDEXED,
            "blank": FileStatus.EMPTY,
        }
        assert report.total_chunks == 4
        assert report.files_failed == 0
        assert sorted(index.records) == [
            "hours-chunk-0",
            "syllabus-chunk-0",
            "syllabus-chunk-1",
            "syllabus-chunk-2",
        ]

    @pytest.mark.asyncio
    async def test_synced_chunks_are_retrievable(self) -> None:
        embedding, index = MockEmbeddingProvider(), MockVectorStore()
        await _pipeline(_folder(), embedding, index).sync("folder-1")

        result = await RetrievalEngine(embedding, index).retrieve(_PARAGRAPHS[2], top_k=2)

        top = result.matches[0]
        assert top.id == "syllabus-chunk-2"
        assert top.metadata.title == "Syllabus.txt"
        assert result.confidence == pytest.approx(1.0)

    @pytest.mark.asyncio
    async def test_preview_returns_chunks_in_order(self) -> None:
        embedding, index = MockEmbeddingProvider(), MockVectorStore()
        await _pipeline(_folder(), embedding, index).sync("folder-1")

        preview = await PreviewService(vector_store=index).preview("syllabus")

        assert [c.chunk_index for c in preview.chunks] == [0, 1, 2]
        assert [c.text for c in preview.chunks] == _PARAGRAPHS

    @pytest.mark.asyncio
    async def test_answer_cites_synced_document(self) -> None:
        embedding, index = MockEmbeddingProvider(), MockVectorStore()
        await _pipeline(_folder(), embedding, index).sync("folder-1")
        llm = MockLLMProvider(chat_reply="The exam is on **May 12**.")
        service = QAService(retrieval=RetrievalEngine(embedding, index), llm=llm, top_k=3)

        result = await service.ask(_PARAGRAPHS[2])

        assert result.answer == "The exam is on May 12."
        assert result.sources[0].title == "Syllabus.txt"
        assert _PARAGRAPHS[2] in llm.chat_calls[0]["system_prompt"]

    @pytest.mark.asyncio
    async def test_resync_does_not_duplicate(self) -> None:
        embedding, index = MockEmbeddingProvider(), MockVectorStore()
        pipeline = _pipeline(_folder(), embedding, index)

        await pipeline.sync("folder-1")
        await pipeline.sync("folder-1")

        assert await index.count() == 4
