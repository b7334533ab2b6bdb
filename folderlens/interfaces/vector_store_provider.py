"""Abstract base class for vector-index providers.

Stores (id, vector, metadata) triples and answers similarity queries.
Upserts are keyed by id, so writing the same id twice replaces the
earlier record.  Implementations read stored metadata back through
:meth:`ChunkMetadata.from_raw` so callers always see canonical fields.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from folderlens.models.documents import IndexedVector
from folderlens.models.retrieval import RetrievalMatch


# Concrete implementation: ChromaDBProvider (folderlens/providers/vector_store/)
class IVectorStoreProvider(ABC):
    """Contract for the vector index used by ingestion, retrieval and preview.

    **Filter syntax** (the *filters* dict of :meth:`query`) is a flat
    equality match on canonical metadata fields, e.g.
    ``{"source_file_id": "abc123"}``.
    """

    @abstractmethod
    async def upsert(self, vectors: list[IndexedVector]) -> int:
        """Insert or replace *vectors* by id.

        Returns
        -------
        int
            Number of vectors written.

        Raises
        ------
        folderlens.utils.errors.RAGError
            If the index rejects the write.
        """

    @abstractmethod
    async def query(
        self,
        vector: list[float],
        top_k: int = 5,
        filters: dict[str, Any] | None = None,
    ) -> list[RetrievalMatch]:
        """Return the *top_k* most similar records, best first.

        Raises
        ------
        folderlens.utils.errors.RAGError
            If the query fails.
        """

    @abstractmethod
    async def list_by_source(self, source_file_id: str) -> list[RetrievalMatch]:
        """Return every stored record of one source file, in no particular order."""

    @abstractmethod
    async def count(self) -> int:
        """Return the number of records in the index."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"chromadb"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the index can be reached."""
