"""FastAPI API routes for FolderLens.

Service dependencies are resolved from ``app.state`` via FastAPI's
``Depends`` using the ``Annotated`` pattern.  A dependency that was not
built at startup (missing credentials) resolves to ``None`` and the route
answers 503.

# ─── API ROUTE MAP ─────────────────────────────────────────────────────
#
# Endpoint                       Method  Description
# ─────────────────────────────────────────────────────────────────────
# /api/v1/health                 GET     Health check + provider status
# /api/v1/drive/files            GET     List files in the source folder
# /api/v1/drive/sync             POST    Index the source folder
# /api/v1/drive/upload           POST    Upload a file into the folder
# /api/v1/chat                   POST    Ask a question over the index
# /api/v1/documents/preview      POST    Indexed chunks of one file
# /api/v1/review/analyze         POST    Review web pages for outdated text
# /api/v1/transcripts            POST    Transcribe a video into the folder
# /api/v1/speech                 POST    Read text aloud (audio/mpeg)
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, Response, UploadFile

from folderlens.api.schemas import (
    ChatRequest,
    ChatResponse,
    DriveFileResponse,
    DriveFilesResponse,
    ErrorResponse,
    HealthResponse,
    PreviewRequest,
    ReviewRequest,
    SpeechRequest,
    SyncRequest,
    SyncResponse,
    TranscriptRequest,
    UploadResponse,
)
from folderlens.config.settings import Settings
from folderlens.interfaces.file_store_provider import IFileStoreProvider
from folderlens.interfaces.transcription_provider import ISpeechProvider
from folderlens.interfaces.vector_store_provider import IVectorStoreProvider
from folderlens.models.retrieval import DocumentPreview
from folderlens.models.review import PageReview
from folderlens.models.transcript import TranscriptResult
from folderlens.services.ingestion.ingestion_service import IngestionPipeline
from folderlens.services.preview_service import PreviewService
from folderlens.services.qa_service import QAService
from folderlens.services.review.review_service import ContentReviewService
from folderlens.services.transcript_service import TranscriptService
from folderlens.utils.errors import FolderLensError
from folderlens.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")

APP_VERSION = "0.1.0"

_FOLDER_REQUIRED = (
    "Google Drive folder ID is required. Pass folder_id or set GOOGLE_DRIVE_FOLDER_ID."
)


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def _get_settings(request: Request) -> Settings:
    """Return the application settings from application state."""
    return request.app.state.settings


def _get_file_store(request: Request) -> IFileStoreProvider | None:
    """Return the file store from application state, or ``None``."""
    return getattr(request.app.state, "file_store", None)


def _get_ingestion_pipeline(request: Request) -> IngestionPipeline | None:
    return getattr(request.app.state, "ingestion_pipeline", None)


def _get_vector_store(request: Request) -> IVectorStoreProvider | None:
    return getattr(request.app.state, "vector_store", None)


def _get_qa_service(request: Request) -> QAService | None:
    return getattr(request.app.state, "qa_service", None)


def _get_preview_service(request: Request) -> PreviewService | None:
    return getattr(request.app.state, "preview_service", None)


def _get_review_service(request: Request) -> ContentReviewService | None:
    return getattr(request.app.state, "review_service", None)


def _get_transcript_service(request: Request) -> TranscriptService | None:
    return getattr(request.app.state, "transcript_service", None)


def _get_speech_provider(request: Request) -> ISpeechProvider | None:
    return getattr(request.app.state, "speech_provider", None)


SettingsDep = Annotated[Settings, Depends(_get_settings)]
FileStoreDep = Annotated[IFileStoreProvider | None, Depends(_get_file_store)]
PipelineDep = Annotated[IngestionPipeline | None, Depends(_get_ingestion_pipeline)]
VectorStoreDep = Annotated[IVectorStoreProvider | None, Depends(_get_vector_store)]
QAServiceDep = Annotated[QAService | None, Depends(_get_qa_service)]
PreviewServiceDep = Annotated[PreviewService | None, Depends(_get_preview_service)]
ReviewServiceDep = Annotated[ContentReviewService | None, Depends(_get_review_service)]
TranscriptServiceDep = Annotated[TranscriptService | None, Depends(_get_transcript_service)]
SpeechDep = Annotated[ISpeechProvider | None, Depends(_get_speech_provider)]


def _require(component: Any, label: str) -> Any:
    if component is None:
        raise HTTPException(status_code=503, detail=f"{label} not available")
    return component


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Application health check",
)
async def health_check(request: Request, vector_store: VectorStoreDep) -> HealthResponse:
    """Return application health, version, provider availability and index size."""
    providers: dict[str, Any] = dict(getattr(request.app.state, "provider_registry", {}))

    indexed_chunks: int | None = None
    if vector_store is not None:
        try:
            indexed_chunks = await vector_store.count()
        except FolderLensError as exc:
            _logger.warning("health_index_count_failed", error=str(exc))
            providers["vector_store"] = False

    critical = ("file_store", "embedding", "vector_store", "llm")
    if all(providers.get(name, False) for name in critical):
        status = "healthy"
    elif any(providers.values()):
        status = "degraded"
    else:
        status = "unhealthy"

    return HealthResponse(
        status=status,
        version=APP_VERSION,
        providers=providers,
        indexed_chunks=indexed_chunks,
    )


# ---------------------------------------------------------------------------
# Drive
# ---------------------------------------------------------------------------


@router.get(
    "/drive/files",
    response_model=DriveFilesResponse,
    responses={400: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    summary="List files in the source folder",
)
async def list_drive_files(
    settings: SettingsDep,
    file_store: FileStoreDep,
    folder_id: str | None = None,
) -> DriveFilesResponse:
    store = _require(file_store, "File store")
    target = folder_id or settings.google_drive_folder_id
    if not target:
        raise HTTPException(status_code=400, detail=_FOLDER_REQUIRED)

    files = await store.list_files(target)
    return DriveFilesResponse(
        folder_id=target,
        files=[
            DriveFileResponse(
                id=f.id, name=f.name, content_type=f.content_type, modified_time=f.modified_time
            )
            for f in files
        ],
        count=len(files),
    )


@router.post(
    "/drive/sync",
    response_model=SyncResponse,
    responses={400: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    summary="Index every file in the source folder",
)
async def sync_drive(
    settings: SettingsDep,
    pipeline: PipelineDep,
    body: SyncRequest | None = None,
) -> SyncResponse:
    """Run a full sync and return the per-file report.

    A listing failure is fatal and surfaces as an error response; per-file
    failures are reported inside the returned report.
    """
    ingestion = _require(pipeline, "Ingestion pipeline")
    body = body or SyncRequest()
    folder_id = body.folder_id or settings.google_drive_folder_id
    if not folder_id:
        raise HTTPException(status_code=400, detail=_FOLDER_REQUIRED)

    if body.timeout_seconds is None:
        timeout = settings.sync_deadline
    else:
        timeout = body.timeout_seconds or None
    report = await ingestion.sync(folder_id, timeout=timeout)
    message = report.summary_message()
    _logger.info("sync_request_complete", folder_id=folder_id, summary=message)
    return SyncResponse(
        message=message,
        total_files=report.total_files,
        files_indexed=report.files_indexed,
        files_failed=report.files_failed,
        report=report,
    )


@router.post(
    "/drive/upload",
    response_model=UploadResponse,
    responses={400: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    summary="Upload a file into the source folder",
)
async def upload_drive_file(
    file: UploadFile,
    settings: SettingsDep,
    file_store: FileStoreDep,
    folder_id: str | None = None,
) -> UploadResponse:
    store = _require(file_store, "File store")
    target = folder_id or settings.google_drive_folder_id
    if not target:
        raise HTTPException(status_code=400, detail=_FOLDER_REQUIRED)

    data = await file.read()
    if not data:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")

    stored = await store.store_bytes(
        file.filename or "upload",
        data,
        content_type=file.content_type or "application/octet-stream",
        folder_id=target,
    )
    return UploadResponse(file_id=stored.id, name=stored.name, view_link=stored.view_link)


# ---------------------------------------------------------------------------
# Chat / preview
# ---------------------------------------------------------------------------


@router.post(
    "/chat",
    response_model=ChatResponse,
    responses={400: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    summary="Ask a question over the indexed documents",
)
async def chat(body: ChatRequest, qa_service: QAServiceDep) -> ChatResponse:
    service = _require(qa_service, "Q&A service")
    if not body.message.strip():
        raise HTTPException(status_code=400, detail="Message is required")

    result = await service.ask(body.message, history=body.history)
    return ChatResponse(
        response=result.answer,
        context_used=result.context_used,
        sources=result.sources,
        confidence=result.confidence,
    )


@router.post(
    "/documents/preview",
    response_model=DocumentPreview,
    responses={400: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    summary="Show the indexed chunks of one file",
)
async def preview_document(
    body: PreviewRequest, preview_service: PreviewServiceDep
) -> DocumentPreview:
    service = _require(preview_service, "Preview service")
    if not body.file_id:
        raise HTTPException(status_code=400, detail="File ID is required")
    return await service.preview(body.file_id)


# ---------------------------------------------------------------------------
# Review / transcripts / speech
# ---------------------------------------------------------------------------


@router.post(
    "/review/analyze",
    response_model=list[PageReview],
    responses={400: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    summary="Review web pages for outdated platform messaging",
)
async def analyze_pages(
    body: ReviewRequest,
    settings: SettingsDep,
    review_service: ReviewServiceDep,
) -> list[PageReview]:
    """Review each URL; one :class:`PageReview` per URL, in request order."""
    service = _require(review_service, "Review service")
    if not body.urls:
        raise HTTPException(status_code=400, detail="URLs array is required")
    if len(body.urls) > settings.review_max_urls:
        raise HTTPException(
            status_code=400,
            detail=f"Maximum {settings.review_max_urls} URLs allowed per request",
        )
    return await service.scan(body.urls)


@router.post(
    "/transcripts",
    response_model=TranscriptResult,
    responses={400: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    summary="Transcribe a video and store the transcript",
)
async def create_transcript(
    body: TranscriptRequest, transcript_service: TranscriptServiceDep
) -> TranscriptResult:
    service = _require(transcript_service, "Transcript service")
    if not body.url.strip():
        raise HTTPException(status_code=400, detail="Video URL is required")
    return await service.transcribe_video(body.url, auto_upload=body.auto_upload)


@router.post(
    "/speech",
    responses={
        200: {"content": {"audio/mpeg": {}}},
        400: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
    response_class=Response,
    summary="Synthesize speech from text",
)
async def synthesize_speech(body: SpeechRequest, speech_provider: SpeechDep) -> Response:
    provider = _require(speech_provider, "Speech provider")
    if not body.text.strip():
        raise HTTPException(status_code=400, detail="Text is required")
    audio = await provider.synthesize(body.text)
    return Response(
        content=audio,
        media_type="audio/mpeg",
        headers={"Content-Length": str(len(audio))},
    )
