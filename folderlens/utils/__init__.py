"""Utility modules for FolderLens.

- **errors** -- exception hierarchy rooted at FolderLensError; each
  collaborator raises its own subclass so the pipelines can classify
  failures as fatal or recoverable.
- **concurrency** -- semaphore-throttled gather used for chunk embedding
  and page scanning.
- **logging** -- structlog setup: coloured console output in development,
  structured JSON in production.
"""

from folderlens.utils.concurrency import throttled_gather
from folderlens.utils.errors import (
    AcquisitionError,
    AuthError,
    ConfigurationError,
    ExtractionError,
    FileStoreError,
    FolderLensError,
    LLMError,
    NotFoundError,
    PermissionDeniedError,
    PipelineError,
    RAGError,
    RateLimitError,
)
from folderlens.utils.logging import configure_logging, get_logger

__all__ = [
    "AcquisitionError",
    "AuthError",
    "ConfigurationError",
    "ExtractionError",
    "FileStoreError",
    "FolderLensError",
    "LLMError",
    "NotFoundError",
    "PermissionDeniedError",
    "PipelineError",
    "RAGError",
    "RateLimitError",
    "configure_logging",
    "get_logger",
    "throttled_gather",
]
