"""ChromaDB vector index provider adapter.

Wraps `chromadb.PersistentClient` to implement :class:`IVectorStoreProvider`.
Uses cosine distance for similarity search and stores each chunk's
canonical metadata next to its vector.  Fully local; no external service
required.
"""

from __future__ import annotations

import os
from typing import Any

# Disable ChromaDB's anonymous telemetry before the client is imported.
os.environ["ANONYMIZED_TELEMETRY"] = "False"

import chromadb
import structlog

from folderlens.interfaces.vector_store_provider import IVectorStoreProvider
from folderlens.models.documents import ChunkMetadata, IndexedVector
from folderlens.models.retrieval import RetrievalMatch
from folderlens.utils.errors import RAGError

logger = structlog.get_logger(logger_name=__name__)

# Keys under which older ingestion runs stored the owning file id.
_SOURCE_ID_KEYS = ("source_file_id", "file_id", "fileId")


class _NoopEmbeddingFunction(chromadb.EmbeddingFunction[list[str]]):
    """No-op embedding function that prevents ChromaDB from loading a model.

    FolderLens always passes pre-computed embeddings, so ChromaDB's built-in
    embedding is never invoked.  Without this, ChromaDB downloads its
    default ONNX model on collection creation.
    """

    def __call__(self, input: list[str]) -> list[list[float]]:
        raise NotImplementedError(
            "FolderLens uses pre-computed embeddings; "
            "ChromaDB's built-in embedding should never be called."
        )

    def name(self) -> str:
        """Return function name (required by ChromaDB's EmbeddingFunction protocol)."""
        return "noop_precomputed"


class ChromaDBProvider(IVectorStoreProvider):
    """Vector index backed by ChromaDB with local persistence.

    Parameters
    ----------
    persist_directory:
        On-disk location of the database.
    collection_name:
        Collection holding the folder's chunks.
    expected_dimension:
        When given, checked against a stored vector at startup; a mismatch
        means the index was built with a different embedding model.
    client:
        Pre-built client (e.g. ``chromadb.EphemeralClient()`` in tests).
    """

    def __init__(
        self,
        persist_directory: str = "./data/chromadb",
        collection_name: str = "folderlens_corpus",
        expected_dimension: int | None = None,
        client: Any | None = None,
    ) -> None:
        self._persist_directory = persist_directory
        self._collection_name = collection_name
        self._client = client or chromadb.PersistentClient(
            path=persist_directory,
            settings=chromadb.config.Settings(anonymized_telemetry=False),
        )
        # Collections created by another embedding function refuse the no-op
        # one; open those with whatever function was persisted.
        try:
            self._collection = self._client.get_or_create_collection(
                name=collection_name,
                metadata={"hnsw:space": "cosine"},
                embedding_function=_NoopEmbeddingFunction(),
            )
        except ValueError:
            self._collection = self._client.get_or_create_collection(
                name=collection_name,
                metadata={"hnsw:space": "cosine"},
            )

        if expected_dimension is not None:
            self._validate_embedding_dimensions(expected_dimension)

    # ------------------------------------------------------------------
    # Startup validation
    # ------------------------------------------------------------------

    def _validate_embedding_dimensions(self, expected_dim: int) -> None:
        """Fail fast when stored vectors do not match the embedding model."""
        try:
            if self._collection.count() == 0:
                return
            sample = self._collection.peek(limit=1)
            embeddings = sample.get("embeddings") if sample else None
            if embeddings is None or len(embeddings) == 0:
                return
            stored_dim = len(embeddings[0])
        except Exception as exc:  # noqa: BLE001
            logger.warning("embedding_dimension_check_skipped", error=str(exc))
            return

        if stored_dim != expected_dim:
            logger.error(
                "embedding_dimension_mismatch", stored_dim=stored_dim, expected_dim=expected_dim
            )
            raise RAGError(
                message=(
                    f"Embedding dimension mismatch: index has {stored_dim}-dim vectors "
                    f"but the embedding model produces {expected_dim}-dim vectors. "
                    f"Set OPENAI_EMBEDDING_MODEL to the model used to build the index."
                ),
                provider_name=self.get_provider_name(),
            )
        logger.info("embedding_dimension_validated", dimension=stored_dim)

    # ------------------------------------------------------------------
    # IVectorStoreProvider implementation
    # ------------------------------------------------------------------

    async def upsert(self, vectors: list[IndexedVector], batch_size: int = 500) -> int:
        """Insert or replace *vectors* by id, in batches of *batch_size*."""
        if not vectors:
            return 0
        try:
            for start in range(0, len(vectors), batch_size):
                batch = vectors[start:start + batch_size]
                self._collection.upsert(
                    ids=[v.id for v in batch],
                    embeddings=[v.values for v in batch],
                    documents=[v.metadata.text for v in batch],
                    metadatas=[v.metadata.to_flat_dict() for v in batch],
                )
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB upsert failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.debug("chromadb_upsert", count=len(vectors))
        return len(vectors)

    async def query(
        self,
        vector: list[float],
        top_k: int = 5,
        filters: dict[str, Any] | None = None,
    ) -> list[RetrievalMatch]:
        """Return the *top_k* nearest records as similarity-ranked matches.

        Cosine distance is converted to similarity as ``1 - distance``,
        clamped to ``[0, 1]``.
        """
        try:
            available = self._collection.count()
            if available == 0:
                return []

            kwargs: dict[str, Any] = {
                "query_embeddings": [vector],
                "n_results": max(1, min(top_k, available)),
                "include": ["metadatas", "documents", "distances"],
            }
            where = self._translate_filters(filters)
            if where:
                kwargs["where"] = where

            results = self._collection.query(**kwargs)
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB query failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        ids = results["ids"][0] if results.get("ids") else []
        metadatas = results["metadatas"][0] if results.get("metadatas") else [{}] * len(ids)
        documents = results["documents"][0] if results.get("documents") else [""] * len(ids)
        distances = results["distances"][0] if results.get("distances") else [1.0] * len(ids)

        matches = [
            RetrievalMatch(
                id=record_id,
                score=max(0.0, min(1.0, 1.0 - distance)),
                metadata=self._read_metadata(meta, document),
            )
            for record_id, meta, document, distance in zip(ids, metadatas, documents, distances)
        ]
        logger.debug(
            "chromadb_query",
            results_count=len(matches),
            top_score=matches[0].score if matches else 0.0,
        )
        return matches

    async def list_by_source(self, source_file_id: str) -> list[RetrievalMatch]:
        """Return every record stored under *source_file_id*, including legacy keys."""
        where = {"$or": [{key: source_file_id} for key in _SOURCE_ID_KEYS]}
        try:
            records = self._collection.get(where=where, include=["metadatas", "documents"])
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB list_by_source failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        ids = records.get("ids") or []
        metadatas = records.get("metadatas") or [{}] * len(ids)
        documents = records.get("documents") or [""] * len(ids)
        return [
            RetrievalMatch(id=record_id, score=0.0, metadata=self._read_metadata(meta, document))
            for record_id, meta, document in zip(ids, metadatas, documents)
        ]

    async def count(self) -> int:
        try:
            return self._collection.count()
        except Exception as exc:
            raise RAGError(
                message=f"ChromaDB count failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    def get_provider_name(self) -> str:
        return "chromadb"

    def is_available(self) -> bool:
        """Return ``True`` if the ChromaDB collection is accessible."""
        try:
            self._collection.count()
            return True
        except Exception:  # noqa: BLE001
            return False

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _read_metadata(meta: dict[str, Any] | None, document: str | None) -> ChunkMetadata:
        raw = dict(meta or {})
        if document and not raw.get("text"):
            raw["text"] = document
        return ChunkMetadata.from_raw(raw)

    @staticmethod
    def _translate_filters(filters: dict[str, Any] | None) -> dict[str, Any] | None:
        """Translate flat equality filters to a ChromaDB ``where`` clause."""
        if not filters:
            return None
        clauses = [{key: value} for key, value in filters.items()]
        if len(clauses) == 1:
            return clauses[0]
        return {"$and": clauses}
