"""FolderLens FastAPI application entry point.

Wires together all providers, services, and routes via dependency injection.
Loads configuration from ``.env`` and ``config/config.yaml`` and configures
structured logging.  Components whose credentials are missing are left
out; the routes that need them answer 503 instead of failing at startup.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI

from folderlens.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from folderlens.api.routes import APP_VERSION
from folderlens.api.routes import router as api_router
from folderlens.config.loader import load_config
from folderlens.config.settings import Settings
from folderlens.interfaces.embedding_provider import IEmbeddingProvider
from folderlens.interfaces.file_store_provider import IFileStoreProvider
from folderlens.interfaces.llm_provider import ILLMProvider
from folderlens.providers.drive.google_drive_provider import GoogleDriveProvider
from folderlens.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from folderlens.providers.llm.openai_provider import OpenAILLMProvider
from folderlens.providers.page.web_page_provider import WebPageProvider
from folderlens.providers.speech.openai_speech_provider import OpenAISpeechProvider
from folderlens.providers.transcription.whisper_api_provider import WhisperAPIProvider
from folderlens.providers.vector_store.chromadb_provider import ChromaDBProvider
from folderlens.services.ingestion.chunker import TextChunker
from folderlens.services.ingestion.ingestion_service import IngestionPipeline
from folderlens.services.preview_service import PreviewService
from folderlens.services.qa_service import QAService
from folderlens.services.retrieval_service import RetrievalEngine
from folderlens.services.review.review_service import (
    ContentReviewService,
    review_settings_from_config,
)
from folderlens.services.review.terminology import load_review_terms
from folderlens.services.transcript_service import TranscriptService
from folderlens.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()
config = load_config(settings=settings)

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Provider selection
# ---------------------------------------------------------------------------


def _build_file_store(
    app_settings: Settings, http_client: httpx.AsyncClient
) -> IFileStoreProvider | None:
    """Return the Google Drive store, or ``None`` without OAuth credentials."""
    if not app_settings.has_drive_credentials():
        _logger.warning(
            "file_store_disabled",
            msg="GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET / GOOGLE_REFRESH_TOKEN not set.",
        )
        return None
    return GoogleDriveProvider(settings=app_settings, http_client=http_client)


def _build_embedding_provider(app_settings: Settings) -> IEmbeddingProvider | None:
    if not app_settings.openai_api_key:
        return None
    provider = OpenAIEmbeddingProvider(settings=app_settings)
    return provider if provider.is_available() else None


def _build_llm_provider(app_settings: Settings) -> ILLMProvider | None:
    if not app_settings.openai_api_key:
        return None
    return OpenAILLMProvider(settings=app_settings)


def _build_all(app_settings: Settings, app_config: dict[str, Any] | None = None) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    Components that cannot be built are stored as ``None``.
    """
    app_config = app_config or {}

    # -- Shared resources --
    http_client = httpx.AsyncClient(timeout=30.0)

    # -- Providers --
    file_store = _build_file_store(app_settings, http_client)
    embedding_provider = _build_embedding_provider(app_settings)
    llm = _build_llm_provider(app_settings)
    vector_store = ChromaDBProvider(
        persist_directory=app_settings.chromadb_persist_dir,
        collection_name=app_settings.chromadb_collection,
        expected_dimension=embedding_provider.get_dimension() if embedding_provider else None,
    )
    page_fetcher = WebPageProvider()

    # -- Retrieval / Q&A --
    retrieval = None
    if embedding_provider is not None:
        retrieval = RetrievalEngine(
            embedding_provider=embedding_provider,
            vector_store=vector_store,
            default_top_k=app_settings.retrieval_top_k,
        )

    qa_service = None
    if retrieval is not None and llm is not None:
        qa_service = QAService(retrieval=retrieval, llm=llm, top_k=app_settings.retrieval_top_k)

    preview_service = PreviewService(vector_store=vector_store)

    # -- Ingestion --
    ingestion_pipeline = None
    if file_store is not None and embedding_provider is not None:
        ingestion_pipeline = IngestionPipeline(
            file_store=file_store,
            embedding_provider=embedding_provider,
            vector_store=vector_store,
            chunker=TextChunker(
                max_size=app_settings.chunk_max_size,
                overlap=app_settings.chunk_overlap,
                min_length=app_settings.chunk_min_length,
            ),
            max_concurrent_files=app_settings.sync_max_concurrent_files,
            max_concurrent_chunks=app_settings.embed_max_concurrent_chunks,
        )

    # -- Content review --
    review_service = None
    if llm is not None:
        review_service = ContentReviewService(
            page_fetcher=page_fetcher,
            llm=llm,
            retrieval=retrieval,
            rules=load_review_terms(app_config),
            top_k=app_settings.review_top_k,
            max_concurrent_pages=app_settings.review_max_concurrent_pages,
            **review_settings_from_config(app_config),
        )

    # -- Transcripts / speech --
    transcript_service = None
    speech_provider = None
    if app_settings.openai_api_key:
        transcript_service = TranscriptService(
            transcriber=WhisperAPIProvider(
                api_key=app_settings.openai_api_key,
                model=app_settings.openai_whisper_model,
            ),
            file_store=file_store,
            http_client=http_client,
        )
        speech_provider = OpenAISpeechProvider(
            api_key=app_settings.openai_api_key,
            model=app_settings.openai_tts_model,
            voice=app_settings.openai_tts_voice,
        )

    # -- Provider registry for /health --
    provider_registry: dict[str, bool] = {
        "file_store": file_store is not None,
        "embedding": embedding_provider is not None,
        "vector_store": vector_store.is_available(),
        "llm": llm is not None,
        "page_fetcher": True,
        "transcription": transcript_service is not None,
        "speech": speech_provider is not None,
    }

    return {
        "settings": app_settings,
        "http_client": http_client,
        "page_fetcher": page_fetcher,
        "file_store": file_store,
        "vector_store": vector_store,
        "ingestion_pipeline": ingestion_pipeline,
        "qa_service": qa_service,
        "preview_service": preview_service,
        "review_service": review_service,
        "transcript_service": transcript_service,
        "speech_provider": speech_provider,
        "provider_registry": provider_registry,
    }


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise all providers and services on startup, clean up on shutdown."""
    components = _build_all(settings, config)

    for key, value in components.items():
        setattr(application.state, key, value)

    _logger.info(
        "app_startup",
        version=APP_VERSION,
        environment=settings.app_env,
        providers={k: v for k, v in components["provider_registry"].items() if v},
    )

    yield

    # -- Shutdown: close shared httpx clients --
    page_fetcher: WebPageProvider = components["page_fetcher"]
    await page_fetcher.aclose()
    http_client: httpx.AsyncClient = components["http_client"]
    await http_client.aclose()
    _logger.info("app_shutdown", message="HTTP clients closed")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="FolderLens API",
        version=APP_VERSION,
        description=(
            "Index a shared document folder, answer questions grounded in it, "
            "review web pages for outdated platform messaging, and transcribe "
            "videos into the folder."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application)

    # -- API routes --
    application.include_router(api_router)

    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "folderlens.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
