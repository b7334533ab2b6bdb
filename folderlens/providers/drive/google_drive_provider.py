"""Google Drive file store provider using the Drive v3 REST API over httpx.

Implements :class:`IFileStoreProvider` with an OAuth2 refresh-token grant:
the access token is fetched on first use, cached until shortly before
it expires, and refreshed transparently.  Google-native documents
(Docs, Sheets, Slides) are exported to portable text formats; every
other file is downloaded as-is.

HTTP failures are mapped onto the FolderLens error hierarchy:

    401 / invalid_grant -> AuthError
    403                 -> PermissionDeniedError
    404                 -> NotFoundError
    429                 -> RateLimitError
    anything else       -> FileStoreError
"""

from __future__ import annotations

import asyncio
import json
import time
import uuid
from datetime import datetime
from typing import Any

import httpx
import structlog

from folderlens.config.settings import Settings
from folderlens.interfaces.file_store_provider import IFileStoreProvider, StoredFile
from folderlens.models.documents import SourceFile
from folderlens.utils.errors import (
    AuthError,
    ConfigurationError,
    FileStoreError,
    FolderLensError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitError,
)

logger = structlog.get_logger(logger_name=__name__)

_TOKEN_URL = "https://oauth2.googleapis.com/token"
_FILES_URL = "https://www.googleapis.com/drive/v3/files"
_UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3/files"
_LIST_FIELDS = "nextPageToken, files(id, name, mimeType, modifiedTime)"
_PAGE_SIZE = 1000
_DEFAULT_TIMEOUT = 30.0
_TOKEN_EXPIRY_MARGIN = 60.0  # seconds

# Google-native type -> export format.
EXPORT_MIME_TYPES: dict[str, str] = {
    "application/vnd.google-apps.document": "text/plain",
    "application/vnd.google-apps.spreadsheet": "text/csv",
    "application/vnd.google-apps.presentation": "text/plain",
}
_GOOGLE_APPS_PREFIX = "application/vnd.google-apps."
_FOLDER_MIME = "application/vnd.google-apps.folder"


class GoogleDriveProvider(IFileStoreProvider):
    """File store backed by one Google Drive account.

    Parameters
    ----------
    settings:
        Supplies the OAuth client id/secret, refresh token and the default
        folder id used by :meth:`store_bytes`.
    http_client:
        Pre-built client (tests pass one with ``httpx.MockTransport``).
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient | None = None) -> None:
        self._client_id = settings.google_client_id
        self._client_secret = settings.google_client_secret
        self._refresh_token = settings.google_refresh_token
        self._default_folder_id = settings.google_drive_folder_id
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(_DEFAULT_TIMEOUT))
        self._access_token: str | None = None
        self._token_expires_at: float = 0.0
        self._token_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # IFileStoreProvider implementation
    # ------------------------------------------------------------------

    async def list_files(self, folder_id: str) -> list[SourceFile]:
        """List every non-trashed, non-folder file directly inside *folder_id*."""
        files: list[SourceFile] = []
        page_token: str | None = None
        while True:
            params: dict[str, Any] = {
                "q": f"'{folder_id}' in parents and trashed=false",
                "fields": _LIST_FIELDS,
                "pageSize": _PAGE_SIZE,
                "supportsAllDrives": "true",
                "includeItemsFromAllDrives": "true",
            }
            if page_token:
                params["pageToken"] = page_token

            response = await self._request("GET", _FILES_URL, params=params)
            payload = response.json()
            for item in payload.get("files", []):
                if item.get("mimeType") == _FOLDER_MIME:
                    continue
                files.append(self._to_source_file(item))

            page_token = payload.get("nextPageToken")
            if not page_token:
                break

        logger.info("drive_files_listed", folder_id=folder_id, count=len(files))
        return files

    async def fetch_bytes(self, file_id: str, content_type: str) -> bytes:
        """Download *file_id*, exporting Google-native documents first."""
        if content_type.startswith(_GOOGLE_APPS_PREFIX):
            export_type = EXPORT_MIME_TYPES.get(content_type, "text/plain")
            response = await self._request(
                "GET", f"{_FILES_URL}/{file_id}/export", params={"mimeType": export_type}
            )
        else:
            response = await self._request(
                "GET", f"{_FILES_URL}/{file_id}", params={"alt": "media"}
            )
        logger.debug("drive_file_fetched", file_id=file_id, bytes=len(response.content))
        return response.content

    async def store_bytes(
        self,
        name: str,
        data: bytes,
        content_type: str = "text/plain",
        folder_id: str | None = None,
    ) -> StoredFile:
        """Create *name* in *folder_id* (default: the configured folder)."""
        target = folder_id or self._default_folder_id
        if not target:
            raise ConfigurationError(
                message="Google Drive folder ID is required. Set GOOGLE_DRIVE_FOLDER_ID.",
                provider_name=self.get_provider_name(),
            )

        boundary = f"folderlens-{uuid.uuid4().hex}"
        metadata = json.dumps({"name": name, "parents": [target]}).encode("utf-8")
        body = b"".join(
            [
                f"--{boundary}\r\nContent-Type: application/json; charset=UTF-8\r\n\r\n".encode(),
                metadata,
                f"\r\n--{boundary}\r\nContent-Type: {content_type}\r\n\r\n".encode(),
                data,
                f"\r\n--{boundary}--\r\n".encode(),
            ]
        )
        response = await self._request(
            "POST",
            _UPLOAD_URL,
            params={"uploadType": "multipart", "fields": "id,name,webViewLink", "supportsAllDrives": "true"},
            content=body,
            headers={"Content-Type": f"multipart/related; boundary={boundary}"},
        )
        payload = response.json()
        stored = StoredFile(
            id=payload.get("id", ""),
            name=payload.get("name", name),
            view_link=payload.get("webViewLink"),
        )
        logger.info("drive_file_stored", file_id=stored.id, name=stored.name, folder_id=target)
        return stored

    def get_provider_name(self) -> str:
        return "google_drive"

    def is_available(self) -> bool:
        return bool(self._client_id and self._client_secret and self._refresh_token)

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    async def _get_access_token(self) -> str:
        async with self._token_lock:
            if self._access_token and time.monotonic() < self._token_expires_at:
                return self._access_token

            if not self.is_available():
                raise AuthError(
                    message="Google OAuth credentials must be set "
                    "(GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET, GOOGLE_REFRESH_TOKEN)",
                    provider_name=self.get_provider_name(),
                )

            try:
                response = await self._client.post(
                    _TOKEN_URL,
                    data={
                        "client_id": self._client_id,
                        "client_secret": self._client_secret,
                        "refresh_token": self._refresh_token,
                        "grant_type": "refresh_token",
                    },
                )
            except httpx.HTTPError as exc:
                raise AuthError(
                    message=f"Failed to refresh access token: {exc}",
                    provider_name=self.get_provider_name(),
                ) from exc

            if response.status_code != 200:
                detail = self._error_detail(response)
                if "invalid_grant" in detail:
                    message = (
                        "Refresh token expired or revoked. Obtain a new refresh token "
                        "and update GOOGLE_REFRESH_TOKEN."
                    )
                else:
                    message = f"Failed to refresh access token: {detail}"
                raise AuthError(message=message, provider_name=self.get_provider_name())

            payload = response.json()
            self._access_token = payload["access_token"]
            expires_in = float(payload.get("expires_in", 3600))
            self._token_expires_at = time.monotonic() + max(0.0, expires_in - _TOKEN_EXPIRY_MARGIN)
            if payload.get("refresh_token") and payload["refresh_token"] != self._refresh_token:
                logger.warning("drive_refresh_token_rotated")
                self._refresh_token = payload["refresh_token"]
            logger.debug("drive_access_token_refreshed", expires_in=expires_in)
            return self._access_token

    # ------------------------------------------------------------------
    # HTTP helpers
    # ------------------------------------------------------------------

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        token = await self._get_access_token()
        headers = {"Authorization": f"Bearer {token}", **kwargs.pop("headers", {})}
        try:
            response = await self._client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            raise FileStoreError(
                message=f"Google Drive request failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if response.status_code >= 400:
            raise self._map_status(response)
        return response

    def _map_status(self, response: httpx.Response) -> FolderLensError:
        status = response.status_code
        detail = self._error_detail(response)
        name = self.get_provider_name()
        if status == 401 or "invalid_grant" in detail:
            self._access_token = None
            return AuthError(message=f"Google Drive rejected credentials: {detail}", provider_name=name)
        if status == 403:
            return PermissionDeniedError(
                message=f"Access to the requested item was not granted: {detail}", provider_name=name
            )
        if status == 404:
            return NotFoundError(message=f"Google Drive item not found: {detail}", provider_name=name)
        if status == 429:
            return RateLimitError(message=f"Google Drive rate limit exceeded: {detail}", provider_name=name)
        return FileStoreError(message=f"Google Drive HTTP {status}: {detail}", provider_name=name)

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            return response.text[:200] or f"HTTP {response.status_code}"
        error = payload.get("error")
        if isinstance(error, dict):
            return str(error.get("message") or error.get("status") or error)
        if error:
            description = payload.get("error_description")
            return f"{error}: {description}" if description else str(error)
        return response.text[:200]

    @staticmethod
    def _to_source_file(item: dict[str, Any]) -> SourceFile:
        modified: datetime | None = None
        raw_modified = item.get("modifiedTime")
        if raw_modified:
            try:
                modified = datetime.fromisoformat(raw_modified.replace("Z", "+00:00"))
            except ValueError:
                modified = None
        return SourceFile(
            id=item["id"],
            name=item.get("name", item["id"]),
            content_type=item.get("mimeType") or "application/octet-stream",
            modified_time=modified,
        )
