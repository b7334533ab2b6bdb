"""Sync report models returned by the ingestion pipeline.

A sync always produces a :class:`SyncReport`, even when some or all files
fail; per-file problems live in :class:`FileOutcome` entries instead of
being raised.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class FileStatus(str, Enum):
    """Terminal state of one file in a sync pass."""

    INDEXED = "indexed"  # every chunk embedded and stored
    PARTIAL = "partial"  # some chunks failed, at least one stored
    EMPTY = "empty"  # zero-byte file
    NO_TEXT = "no_text"  # valid document without extractable text
    NO_CHUNKS = "no_chunks"  # text present, nothing above the minimum length
    FAILED = "failed"  # fetch / extraction / embedding / upsert failure
    ABANDONED = "abandoned"  # sync deadline expired before the file finished


# Statuses that stored nothing but are not defects.
_BENIGN_EMPTY = frozenset({FileStatus.EMPTY, FileStatus.NO_TEXT, FileStatus.NO_CHUNKS})


class FileOutcome(BaseModel):
    """Result of ingesting one source file."""

    model_config = ConfigDict(frozen=True)

    file_id: str = Field(description="Id of the source file.")
    name: str = Field(description="Display name of the source file.")
    status: FileStatus = Field(description="Terminal state of the file.")
    chunks: int = Field(default=0, ge=0, description="Chunks embedded and stored.")
    attempted_chunks: int = Field(default=0, ge=0, description="Chunks produced by the chunker.")
    error: str | None = Field(
        default=None,
        description="Failure message; set only when nothing was stored because of a defect.",
    )
    detail: str | None = Field(
        default=None, description="Human-readable note, e.g. 'File is empty (0 bytes)'."
    )

    @property
    def is_failure(self) -> bool:
        return self.status in (FileStatus.FAILED, FileStatus.ABANDONED)

    @property
    def is_benign_empty(self) -> bool:
        return self.status in _BENIGN_EMPTY


class SyncReport(BaseModel):
    """Aggregate per-file outcome summary of one ingestion pass."""

    model_config = ConfigDict(frozen=True)

    per_file: list[FileOutcome] = Field(default_factory=list)
    total_chunks: int = Field(default=0, ge=0)
    started_at: datetime | None = None
    finished_at: datetime | None = None
    deadline_exceeded: bool = False

    @property
    def total_files(self) -> int:
        return len(self.per_file)

    @property
    def files_failed(self) -> int:
        return sum(1 for outcome in self.per_file if outcome.is_failure)

    @property
    def files_indexed(self) -> int:
        return sum(1 for outcome in self.per_file if outcome.chunks > 0)

    def summary_message(self) -> str:
        """Return a one-line human summary of the pass."""
        if not self.per_file:
            return "No files found in the folder"
        if self.total_chunks == 0:
            return (
                f"No chunks were created. {self.total_files} file(s) processed but no "
                "valid chunks found. Check file types and content."
            )
        message = (
            f"Processed {self.total_files} file(s) and stored {self.total_chunks} chunk(s)"
        )
        if self.files_failed:
            message += f"; {self.files_failed} file(s) failed"
        return message
