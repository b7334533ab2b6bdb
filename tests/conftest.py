"""Shared pytest fixtures and in-memory fakes for the FolderLens test suite."""

from __future__ import annotations

import hashlib
import math
from typing import Any

import pytest

from folderlens.interfaces.embedding_provider import IEmbeddingProvider
from folderlens.interfaces.file_store_provider import IFileStoreProvider, StoredFile
from folderlens.interfaces.llm_provider import ILLMProvider
from folderlens.interfaces.page_fetcher import IPageFetcher, PageContent
from folderlens.interfaces.vector_store_provider import IVectorStoreProvider
from folderlens.models.documents import IndexedVector, SourceFile
from folderlens.models.retrieval import ChatMessage, RetrievalMatch
from folderlens.utils.errors import AcquisitionError, NotFoundError, RAGError

# ---------------------------------------------------------------------------
# Mock Embedding Provider
# ---------------------------------------------------------------------------

_MOCK_DIM = 16


class MockEmbeddingProvider(IEmbeddingProvider):
    """Deterministic embedding provider for testing.

    Hashes each text with SHA-256 and spreads the digest over a unit
    vector, so identical texts always embed identically.  Texts listed in
    *fail_on* raise ``RAGError`` to simulate a per-chunk service failure.
    """

    def __init__(self, dim: int = _MOCK_DIM, fail_on: set[str] | None = None) -> None:
        self._dim = dim
        self.fail_on = fail_on or set()
        self.calls: list[str] = []

    async def embed(self, texts: list[str]) -> list[list[float]]:
        return [await self.embed_single(t) for t in texts]

    async def embed_single(self, text: str) -> list[float]:
        self.calls.append(text)
        if text in self.fail_on:
            raise RAGError(message="embedding service unavailable", provider_name="mock")
        return self._hash_to_vector(text)

    def _hash_to_vector(self, text: str) -> list[float]:
        digest = hashlib.sha256(text.encode()).digest()
        raw = [(digest[i % len(digest)] / 255.0) - 0.5 for i in range(self._dim)]
        norm = math.sqrt(sum(x * x for x in raw)) or 1.0
        return [x / norm for x in raw]

    def get_dimension(self) -> int:
        return self._dim

    def get_provider_name(self) -> str:
        return "mock-embedding"

    def is_available(self) -> bool:
        return True


# ---------------------------------------------------------------------------
# Mock Vector Store
# ---------------------------------------------------------------------------


def _cosine(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    na = math.sqrt(sum(x * x for x in a)) or 1.0
    nb = math.sqrt(sum(y * y for y in b)) or 1.0
    return dot / (na * nb)


class MockVectorStore(IVectorStoreProvider):
    """In-memory vector index with cosine scoring clamped to [0, 1]."""

    def __init__(self) -> None:
        self.records: dict[str, IndexedVector] = {}
        self.fail_query = False
        self.fail_upsert = False
        self.reject_ids: set[str] = set()
        self.upsert_calls = 0

    async def upsert(self, vectors: list[IndexedVector]) -> int:
        self.upsert_calls += 1
        if self.fail_upsert:
            raise RAGError(message="index write rejected", provider_name="mock")
        rejected = [v.id for v in vectors if v.id in self.reject_ids]
        if rejected:
            raise RAGError(message=f"record {rejected[0]} rejected", provider_name="mock")
        for vector in vectors:
            self.records[vector.id] = vector
        return len(vectors)

    async def query(
        self,
        vector: list[float],
        top_k: int = 5,
        filters: dict[str, Any] | None = None,
    ) -> list[RetrievalMatch]:
        if self.fail_query:
            raise RAGError(message="index unavailable", provider_name="mock")
        scored = [
            RetrievalMatch(
                id=record.id,
                score=max(0.0, min(1.0, _cosine(vector, record.values))),
                metadata=record.metadata,
            )
            for record in self.records.values()
            if not filters
            or all(getattr(record.metadata, k, None) == v for k, v in filters.items())
        ]
        scored.sort(key=lambda m: m.score, reverse=True)
        return scored[:top_k]

    async def list_by_source(self, source_file_id: str) -> list[RetrievalMatch]:
        return [
            RetrievalMatch(id=record.id, score=0.0, metadata=record.metadata)
            for record in reversed(list(self.records.values()))
            if record.metadata.source_file_id == source_file_id
        ]

    async def count(self) -> int:
        return len(self.records)

    def get_provider_name(self) -> str:
        return "mock-vector-store"

    def is_available(self) -> bool:
        return True


# ---------------------------------------------------------------------------
# Mock File Store
# ---------------------------------------------------------------------------


class MockFileStore(IFileStoreProvider):
    """In-memory folder.

    *contents* maps file id to bytes, or to an exception instance that
    :meth:`fetch_bytes` raises.  Setting ``list_error`` makes listing fail.
    """

    def __init__(
        self,
        files: list[SourceFile] | None = None,
        contents: dict[str, bytes | Exception] | None = None,
    ) -> None:
        self.files = files or []
        self.contents = contents or {}
        self.list_error: Exception | None = None
        self.stored: list[tuple[str, bytes, str, str | None]] = []

    async def list_files(self, folder_id: str) -> list[SourceFile]:
        if self.list_error is not None:
            raise self.list_error
        return list(self.files)

    async def fetch_bytes(self, file_id: str, content_type: str) -> bytes:
        value = self.contents.get(file_id)
        if value is None:
            raise NotFoundError(message=f"File {file_id} not found", provider_name="mock")
        if isinstance(value, Exception):
            raise value
        return value

    async def store_bytes(
        self,
        name: str,
        data: bytes,
        content_type: str = "text/plain",
        folder_id: str | None = None,
    ) -> StoredFile:
        self.stored.append((name, data, content_type, folder_id))
        file_id = f"stored-{len(self.stored)}"
        return StoredFile(id=file_id, name=name, view_link=f"https://drive.example/{file_id}")

    def get_provider_name(self) -> str:
        return "mock-file-store"

    def is_available(self) -> bool:
        return True


# ---------------------------------------------------------------------------
# Mock LLM Provider
# ---------------------------------------------------------------------------


class MockLLMProvider(ILLMProvider):
    """Returns canned replies and records every call.

    ``complete_reply`` / ``chat_reply`` may be strings or exceptions.
    """

    def __init__(
        self,
        complete_reply: str | Exception = "{}",
        chat_reply: str | Exception = "Mock answer.",
    ) -> None:
        self.complete_reply = complete_reply
        self.chat_reply = chat_reply
        self.complete_calls: list[dict[str, Any]] = []
        self.chat_calls: list[dict[str, Any]] = []

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 4000,
    ) -> str:
        self.complete_calls.append(
            {
                "system_prompt": system_prompt,
                "user_prompt": user_prompt,
                "temperature": temperature,
            }
        )
        if isinstance(self.complete_reply, Exception):
            raise self.complete_reply
        return self.complete_reply

    async def chat(
        self,
        messages: list[ChatMessage],
        system_prompt: str = "",
        temperature: float = 0.7,
        max_tokens: int = 2000,
    ) -> str:
        self.chat_calls.append({"messages": list(messages), "system_prompt": system_prompt})
        if isinstance(self.chat_reply, Exception):
            raise self.chat_reply
        return self.chat_reply

    def get_provider_name(self) -> str:
        return "mock-llm"

    def is_available(self) -> bool:
        return True


# ---------------------------------------------------------------------------
# Mock Page Fetcher
# ---------------------------------------------------------------------------


class MockPageFetcher(IPageFetcher):
    """Serves canned page text per URL; unknown URLs fail to fetch."""

    def __init__(self, pages: dict[str, str] | None = None) -> None:
        self.pages = pages or {}

    async def fetch(self, url: str) -> PageContent:
        if url not in self.pages:
            raise AcquisitionError(message=f"HTTP 500 for {url}", provider_name="mock")
        text = self.pages[url]
        return PageContent(url=url, html=f"<html><body>{text}</body></html>", text=text, title="Page")

    def get_provider_name(self) -> str:
        return "mock-page-fetcher"

    def is_available(self) -> bool:
        return True


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_embedding_provider() -> MockEmbeddingProvider:
    return MockEmbeddingProvider()


@pytest.fixture
def mock_vector_store() -> MockVectorStore:
    return MockVectorStore()


@pytest.fixture
def mock_llm() -> MockLLMProvider:
    return MockLLMProvider()


@pytest.fixture
def mock_config() -> dict[str, Any]:
    """Return a minimal configuration dict shaped like config/config.yaml."""
    return {
        "app": {"name": "FolderLens"},
        "review": {
            "current_system": "Blackboard Learn",
            "target_system": "Blackboard Ultra",
            "instructor_link": "www.example.edu/ultra",
            "terms": [
                {"pattern": r"\bBlackboard Learn\b", "severity": "high", "replacement": "Blackboard Ultra"},
                {"pattern": r"\bold\s+Blackboard\b", "severity": "medium"},
            ],
        },
    }
