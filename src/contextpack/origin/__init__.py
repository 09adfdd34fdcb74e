"""Document origins and the fetch adapter that classifies their files."""

from contextpack.config import Settings
from contextpack.origin.drive import GoogleDriveOrigin
from contextpack.origin.fetcher import OriginFetchAdapter
from contextpack.origin.folder import FolderOrigin
from contextpack.protocols import DocumentOrigin


def get_origin(settings: Settings) -> DocumentOrigin:
    """Pick the origin for the given settings.

    A configured local folder wins; otherwise Drive is used, and missing
    Drive credentials surface as ``ConfigurationError`` on first fetch.
    """
    if settings.local_folder is not None:
        return FolderOrigin(settings.local_folder)
    token = settings.drive_access_token.get_secret_value() if settings.drive_access_token else None
    return GoogleDriveOrigin(settings.drive_folder_id, token)


__all__ = ["get_origin", "FolderOrigin", "GoogleDriveOrigin", "OriginFetchAdapter"]
