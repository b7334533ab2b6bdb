"""Remote file store adapters.

One concrete implementation of IFileStoreProvider (folderlens/interfaces/file_store_provider.py):
    - GoogleDriveProvider -- Drive v3 REST API with an OAuth2 refresh token
"""

from folderlens.providers.drive.google_drive_provider import GoogleDriveProvider

__all__ = ["GoogleDriveProvider"]
