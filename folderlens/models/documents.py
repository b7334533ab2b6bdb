"""Document and index data models for the FolderLens knowledge base.

Lifecycle of a source document during one sync pass::

    SourceFile  --fetch+extract-->  ExtractedDocument  --chunk-->  Chunk
        Chunk  --embed-->  IndexedVector  --upsert-->  vector index

``SourceFile`` and ``ExtractedDocument`` are transient: they are rediscovered
on every sync and never persisted.  ``IndexedVector`` ids are derived from
(source file id, chunk index) so re-ingesting a file overwrites its
previous vectors instead of duplicating them.

All models are frozen (immutable once built).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def make_vector_id(source_file_id: str, chunk_index: int) -> str:
    """Return the deterministic index id for one chunk of one source file."""
    return f"{source_file_id}-chunk-{chunk_index}"


# ---------------------------------------------------------------------------
# Source side
# ---------------------------------------------------------------------------
class SourceFile(BaseModel):
    """A file discovered in the remote file store during a sync pass."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Opaque file id, stable across syncs.")
    name: str = Field(description="Display name of the file.")
    content_type: str = Field(
        default="text/plain", description="Declared MIME type of the file."
    )
    modified_time: datetime | None = Field(
        default=None, description="Last-modified timestamp reported by the store."
    )


class ExtractedDocument(BaseModel):
    """Plain text extracted from one source file.  Never persisted."""

    model_config = ConfigDict(frozen=True)

    source_file_id: str = Field(description="Id of the owning SourceFile.")
    text: str = Field(description="Plain-text content of the document.")


class Chunk(BaseModel):
    """A bounded fragment of a document's text, the unit stored and retrieved."""

    model_config = ConfigDict(frozen=True)

    source_file_id: str = Field(description="Id of the owning SourceFile.")
    index: int = Field(ge=0, description="Zero-based sequence index within the document.")
    text: str = Field(description="Chunk text content.")

    @property
    def vector_id(self) -> str:
        return make_vector_id(self.source_file_id, self.index)


# ---------------------------------------------------------------------------
# Index side
# ---------------------------------------------------------------------------

# Alternate key names written by older ingestion runs, mapped to the
# canonical field they stand for.  Canonical names win when both exist.
_LEGACY_METADATA_KEYS: dict[str, tuple[str, ...]] = {
    "source_file_id": ("source_file_id", "fileId", "file_id"),
    "chunk_index": ("chunk_index", "chunkIndex"),
    "text": ("text", "content"),
    "title": ("title", "name"),
    "content_type": ("content_type", "mimeType", "mime_type"),
}


class ChunkMetadata(BaseModel):
    """Metadata stored alongside each vector in the index."""

    model_config = ConfigDict(frozen=True)

    source_file_id: str = Field(default="", description="Id of the owning SourceFile.")
    title: str = Field(default="", description="Display name of the source file.")
    text: str = Field(default="", description="The chunk text.")
    chunk_index: int = Field(default=0, ge=0, description="Chunk sequence index.")
    content_type: str = Field(default="", description="Declared MIME type of the source.")

    @classmethod
    def from_raw(cls, raw: dict[str, Any] | None) -> ChunkMetadata:
        """Build metadata from a raw index record, accepting legacy key names.

        This is the single place where records written with older field
        names (``fileId``, ``chunkIndex``, ``content`` ...) are reconciled.
        """
        raw = raw or {}
        values: dict[str, Any] = {}
        for field, candidates in _LEGACY_METADATA_KEYS.items():
            for key in candidates:
                value = raw.get(key)
                if value is not None and value != "":
                    values[field] = value
                    break

        try:
            values["chunk_index"] = max(0, int(values.get("chunk_index", 0)))
        except (TypeError, ValueError):
            values["chunk_index"] = 0
        for key in ("source_file_id", "title", "text", "content_type"):
            if key in values:
                values[key] = str(values[key])
        return cls(**values)

    def to_flat_dict(self) -> dict[str, str | int]:
        """Return scalar-only metadata suitable for vector index storage."""
        return self.model_dump()


class IndexedVector(BaseModel):
    """An (id, vector, metadata) triple ready for upsert."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Deterministic id, see make_vector_id().")
    values: list[float] = Field(description="Embedding vector.")
    metadata: ChunkMetadata = Field(description="Metadata stored with the vector.")
