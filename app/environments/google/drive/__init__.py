"""Google Drive v3 - spreadsheet discovery."""

from app.environments.google.drive.client import (
    GoogleDriveClient,
    SPREADSHEET_MIME_TYPE,
    SPREADSHEET_QUERY,
)
from app.environments.google.drive.schemas import (
    DriveFile,
    DriveFileList,
    DrivePermission,
    DriveUser,
)

__all__ = [
    "GoogleDriveClient",
    "SPREADSHEET_MIME_TYPE",
    "SPREADSHEET_QUERY",
    "DriveFile",
    "DriveFileList",
    "DrivePermission",
    "DriveUser",
]
