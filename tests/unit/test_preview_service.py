"""Unit tests for PreviewService ordering and filtering."""

from __future__ import annotations

import pytest

from folderlens.models.documents import ChunkMetadata, IndexedVector, make_vector_id
from folderlens.models.retrieval import RetrievalMatch
from folderlens.services.preview_service import PreviewService
from folderlens.utils.errors import PipelineError, RAGError
from tests.conftest import MockVectorStore


def _vector(file_id: str, index: int, title: str = "Handbook") -> IndexedVector:
    return IndexedVector(
        id=make_vector_id(file_id, index),
        values=[0.0, 1.0],
        metadata=ChunkMetadata(
            source_file_id=file_id, title=title, text=f"chunk {index}", chunk_index=index
        ),
    )


class _LooseIndex(MockVectorStore):
    """Returns every record for any source id, like a prefix-matching index."""

    async def list_by_source(self, source_file_id: str) -> list[RetrievalMatch]:
        return [
            RetrievalMatch(id=r.id, score=0.0, metadata=r.metadata) for r in self.records.values()
        ]


class _BrokenIndex(MockVectorStore):
    async def list_by_source(self, source_file_id: str) -> list[RetrievalMatch]:
        raise RAGError(message="index unavailable", provider_name="mock")


class TestPreview:
    @pytest.mark.asyncio
    async def test_chunks_sorted_by_index(self, mock_vector_store: MockVectorStore) -> None:
        await mock_vector_store.upsert([_vector("doc", i) for i in (2, 0, 1)])

        preview = await PreviewService(mock_vector_store).preview("doc")

        assert preview.source_file_id == "doc"
        assert [c.chunk_index for c in preview.chunks] == [0, 1, 2]
        assert [c.text for c in preview.chunks] == ["chunk 0", "chunk 1", "chunk 2"]
        assert preview.chunk_count == 3

    @pytest.mark.asyncio
    async def test_other_files_filtered_out(self) -> None:
        index = _LooseIndex()
        await index.upsert([_vector("doc", 0), _vector("doc-2", 0), _vector("doc", 1)])

        preview = await PreviewService(index).preview("doc")

        assert [c.id for c in preview.chunks] == ["doc-chunk-0", "doc-chunk-1"]

    @pytest.mark.asyncio
    async def test_legacy_records_included(self) -> None:
        legacy = ChunkMetadata.from_raw(
            {"fileId": "doc", "chunkIndex": "1", "content": "legacy text", "name": "Old"}
        )
        index = _LooseIndex()
        await index.upsert(
            [
                IndexedVector(id="doc-chunk-1", values=[1.0, 0.0], metadata=legacy),
                _vector("doc", 0),
            ]
        )

        preview = await PreviewService(index).preview("doc")

        assert [c.text for c in preview.chunks] == ["chunk 0", "legacy text"]
        assert preview.chunks[1].title == "Old"

    @pytest.mark.asyncio
    async def test_missing_title_defaults(self, mock_vector_store: MockVectorStore) -> None:
        await mock_vector_store.upsert([_vector("doc", 0, title="")])

        preview = await PreviewService(mock_vector_store).preview("doc")

        assert preview.chunks[0].title == "Untitled"

    @pytest.mark.asyncio
    async def test_unknown_file_is_empty(self, mock_vector_store: MockVectorStore) -> None:
        preview = await PreviewService(mock_vector_store).preview("nothing-here")
        assert preview.chunks == []

    @pytest.mark.asyncio
    async def test_empty_id_rejected(self, mock_vector_store: MockVectorStore) -> None:
        with pytest.raises(PipelineError, match="File ID is required"):
            await PreviewService(mock_vector_store).preview("")

    @pytest.mark.asyncio
    async def test_index_failure_propagates(self) -> None:
        with pytest.raises(RAGError):
            await PreviewService(_BrokenIndex()).preview("doc")
