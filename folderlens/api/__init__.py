"""FolderLens API layer -- routes, schemas, and middleware."""

from folderlens.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
    status_for_error,
)
from folderlens.api.routes import router
from folderlens.api.schemas import (
    ChatRequest,
    ChatResponse,
    ErrorResponse,
    HealthResponse,
    ReviewRequest,
    SyncRequest,
    TranscriptRequest,
)

__all__ = [
    "ErrorHandlingMiddleware",
    "RequestLoggingMiddleware",
    "configure_cors",
    "status_for_error",
    "router",
    "ChatRequest",
    "ChatResponse",
    "ErrorResponse",
    "HealthResponse",
    "ReviewRequest",
    "SyncRequest",
    "TranscriptRequest",
]
