"""Abstract base class for the remote file store holding source documents.

The core only needs three operations: list a folder, fetch a file's bytes,
and write bytes back (derived artifacts such as transcripts).  Credential
handling and token refresh live entirely inside the implementation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel, ConfigDict, Field

from folderlens.models.documents import SourceFile


class StoredFile(BaseModel):
    """Result of writing bytes to the file store."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Id assigned by the store.")
    name: str = Field(default="", description="Name the file was stored under.")
    view_link: str | None = Field(default=None, description="Browser link, when the store has one.")


# Concrete implementation: GoogleDriveProvider (folderlens/providers/drive/)
class IFileStoreProvider(ABC):
    """Contract for listing, reading and writing files in a remote folder."""

    @abstractmethod
    async def list_files(self, folder_id: str) -> list[SourceFile]:
        """Return every non-trashed file directly inside *folder_id*.

        Raises
        ------
        folderlens.utils.errors.AuthError
            If credentials are missing or rejected.
        folderlens.utils.errors.NotFoundError
            If the folder does not exist.
        """

    @abstractmethod
    async def fetch_bytes(self, file_id: str, content_type: str) -> bytes:
        """Download a file's content.

        Store-native formats (e.g. Google Docs) are exported to a portable
        type first; see the implementation for the mapping.

        Raises
        ------
        folderlens.utils.errors.AuthError
            If credentials are missing or rejected.
        folderlens.utils.errors.PermissionDeniedError
            If the credentials cannot read the file.
        """

    @abstractmethod
    async def store_bytes(
        self,
        name: str,
        data: bytes,
        content_type: str = "text/plain",
        folder_id: str | None = None,
    ) -> StoredFile:
        """Create a new file in *folder_id* (or the configured default folder)."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"google_drive"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if credentials are configured."""
