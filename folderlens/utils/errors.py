"""Custom exception hierarchy for FolderLens.

All application exceptions inherit from :class:`FolderLensError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "google_drive", "openai", "chromadb") caused the
failure.

The hierarchy is organized by collaborator:

    FolderLensError  (base -- catch-all for any FolderLens error)
    +-- FileStoreError           (remote file store: list / fetch / store)
    |   +-- AuthError            (credentials missing or rejected)
    |   +-- NotFoundError        (folder or file does not exist)
    |   +-- PermissionDeniedError (caller may not read or write the item)
    +-- ExtractionError          (bytes are invalid for the declared type)
    +-- RAGError                 (embedding or vector-index failure)
    +-- RateLimitError           (any provider rate-limit exceeded)
    +-- LLMError                 (answer / analysis generation failure)
    +-- AcquisitionError         (page fetch, audio download, transcription)
    +-- PipelineError            (orchestration / invalid input)
    +-- ConfigurationError       (startup / missing config)

Components raise these; the orchestrating services decide whether a given
failure is fatal, recoverable per file or chunk, or degrade-and-continue.
"""


class FolderLensError(Exception):
    """Base exception for all FolderLens errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  ``__str__`` prefixes the provider name in brackets for log
    output, e.g. ``[openai_embedding] Rate limit exceeded``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Remote file store errors
# ---------------------------------------------------------------------------

class FileStoreError(FolderLensError):
    """Raised when the remote file store fails to list, fetch, or store."""

    def __init__(
        self,
        message: str = "File store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class AuthError(FileStoreError):
    """Raised when file store credentials are missing, expired, or revoked."""

    def __init__(
        self,
        message: str = "File store authentication failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class NotFoundError(FileStoreError):
    """Raised when a folder or file does not exist in the file store."""

    def __init__(
        self,
        message: str = "Requested item was not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class PermissionDeniedError(FileStoreError):
    """Raised when the credentials lack access to a folder or file."""

    def __init__(
        self,
        message: str = "Permission denied",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Content errors
# ---------------------------------------------------------------------------

class ExtractionError(FolderLensError):
    """Raised when bytes are structurally invalid for their declared content type.

    A valid document that simply contains no text is *not* an error; the
    extractor returns an empty string for that case.
    """

    def __init__(
        self,
        message: str = "Text extraction failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Model / index service errors
# ---------------------------------------------------------------------------

class RAGError(FolderLensError):
    """Raised when an embedding or vector-index operation fails."""

    def __init__(
        self,
        message: str = "RAG operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class RateLimitError(FolderLensError):
    """Raised when an API rate limit is exceeded.

    Retry policy belongs to the provider's own client; the pipelines record
    the failure for the affected unit and move on.
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class LLMError(FolderLensError):
    """Raised when an LLM API call fails or returns an unusable response."""

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class AcquisitionError(FolderLensError):
    """Raised when a peripheral source (web page, video audio, transcription) fails."""

    def __init__(
        self,
        message: str = "Content acquisition failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Orchestration / configuration errors
# ---------------------------------------------------------------------------

class PipelineError(FolderLensError):
    """Raised when orchestration fails or receives unusable input."""

    def __init__(
        self,
        message: str = "Pipeline orchestration failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(FolderLensError):
    """Raised when configuration is invalid or missing."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
