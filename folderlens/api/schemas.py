"""Pydantic request/response schemas for the FolderLens API.

Defines the public contract for the REST endpoints: health, folder listing
and sync, upload, chat, document preview, content review, transcripts and
speech.  Where a domain model already has the right shape (``PageReview``,
``DocumentPreview``, ``TranscriptResult``) the routes return
it directly instead of duplicating it here.

Convention: request schemas end with "Request", response schemas end
with "Response".  ``Field(...)`` adds constraints and descriptions for
the generated OpenAPI docs.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from folderlens.models.ingestion import SyncReport
from folderlens.models.retrieval import ChatMessage, SourceReference


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]
    indexed_chunks: int | None = Field(
        default=None, description="Vectors in the index, or None when it could not be counted."
    )


# ---------------------------------------------------------------------------
# Drive
# ---------------------------------------------------------------------------


class DriveFileResponse(BaseModel):
    """One file in the source folder."""

    id: str
    name: str
    content_type: str
    modified_time: datetime | None = None


class DriveFilesResponse(BaseModel):
    """Listing of the source folder."""

    folder_id: str
    files: list[DriveFileResponse] = Field(default_factory=list)
    count: int = 0


class SyncRequest(BaseModel):
    """Options for a folder sync; every field falls back to configuration."""

    folder_id: str | None = None
    timeout_seconds: float | None = Field(
        default=None,
        ge=0,
        description="Overall deadline; 0 disables it, omit to use SYNC_TIMEOUT_SECONDS.",
    )


class SyncResponse(BaseModel):
    """Report of one sync pass plus its derived totals."""

    message: str
    total_files: int
    files_indexed: int
    files_failed: int
    report: SyncReport


class UploadResponse(BaseModel):
    """Result of storing an uploaded file in the source folder."""

    file_id: str
    name: str
    view_link: str | None = None


# ---------------------------------------------------------------------------
# Chat / preview
# ---------------------------------------------------------------------------


class ChatRequest(BaseModel):
    """A question plus the conversation so far."""

    message: str = Field(..., description="The user's question.")
    history: list[ChatMessage] = Field(default_factory=list)


class ChatResponse(BaseModel):
    """Answer grounded in the indexed corpus."""

    response: str
    context_used: bool
    sources: list[SourceReference] = Field(default_factory=list)
    confidence: float = 0.0


class PreviewRequest(BaseModel):
    """Which indexed file to preview."""

    file_id: str


# ---------------------------------------------------------------------------
# Review / transcripts / speech
# ---------------------------------------------------------------------------


class ReviewRequest(BaseModel):
    """Pages to review for outdated platform messaging."""

    urls: list[str] = Field(default_factory=list)


class TranscriptRequest(BaseModel):
    """A video to transcribe."""

    url: str
    auto_upload: bool = Field(
        default=True, description="Store the transcript in the source folder."
    )


class SpeechRequest(BaseModel):
    """Text to read aloud."""

    text: str
