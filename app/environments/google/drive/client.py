"""
Google Drive API Client - file listing and sharing metadata (Drive v3).

Used by spreadsheet discovery. Works with either a user OAuth token
(google_drive connection) or a service-account token.

Usage Example:
==============
    client = GoogleDriveClient(access_token="ya29.xxx")

    async for page in client.iter_file_pages(SPREADSHEET_QUERY):
        for f in page.files:
            print(f.name, len(f.permissions))
"""

import logging
from typing import AsyncIterator, List, Optional

from app.environments.google.api import GoogleAPIClient
from app.environments.google.auth.schemas import DRIVE_SCOPES
from app.environments.google.drive.schemas import (
    DriveFile,
    DriveFileList,
    DrivePermission,
)


logger = logging.getLogger("shenv.environments.google.drive")


SPREADSHEET_MIME_TYPE = "application/vnd.google-apps.spreadsheet"
SPREADSHEET_QUERY = f"mimeType='{SPREADSHEET_MIME_TYPE}'"

# files.list maximum page size
MAX_PAGE_SIZE = 1000

FILE_FIELDS = "id, name, webViewLink, owners, createdTime, modifiedTime, permissions"
FILE_LIST_FIELDS = f"nextPageToken, files({FILE_FIELDS})"
PERMISSION_FIELDS = "nextPageToken, permissions(id, emailAddress, role, type, displayName, domain)"


class GoogleDriveClient(GoogleAPIClient):
    """
    Google Drive v3 client.

    Attributes:
        access_token: Google access token with a drive read scope
    """

    service_name = "drive"
    required_scopes = DRIVE_SCOPES

    BASE_URL = "https://www.googleapis.com/drive/v3"

    # -------------------------------------------------------------------------
    # FILES
    # -------------------------------------------------------------------------

    async def list_files(
        self,
        query: str,
        page_token: Optional[str] = None,
        page_size: int = MAX_PAGE_SIZE,
        fields: str = FILE_LIST_FIELDS,
    ) -> DriveFileList:
        """
        Fetch one page of files matching query, across all drives.

        Args:
            query: Drive search query (e.g. SPREADSHEET_QUERY)
            page_token: Continuation token from the previous page
            page_size: Files per page (max 1000)
            fields: Partial-response field mask

        Returns:
            DriveFileList with files and next_page_token (None on the last page)
        """
        params = {
            "q": query,
            "pageSize": min(page_size, MAX_PAGE_SIZE),
            "fields": fields,
            "supportsAllDrives": "true",
            "includeItemsFromAllDrives": "true",
        }
        if page_token:
            params["pageToken"] = page_token

        data = await self._make_request("GET", "/files", params=params)
        page = DriveFileList.model_validate(data)

        logger.info(
            f"Listed {len(page.files)} Drive files",
            extra={"has_more": page.next_page_token is not None},
        )
        return page

    async def iter_file_pages(
        self,
        query: str,
        page_size: int = MAX_PAGE_SIZE,
    ) -> AsyncIterator[DriveFileList]:
        """
        Yield pages of files.list strictly in order until Drive stops
        returning a continuation token.
        """
        page_token: Optional[str] = None
        while True:
            page = await self.list_files(query, page_token=page_token, page_size=page_size)
            yield page
            page_token = page.next_page_token
            if not page_token:
                break

    async def get_file(self, file_id: str, fields: str = FILE_FIELDS) -> DriveFile:
        """Fetch one file's metadata."""
        data = await self._make_request(
            "GET",
            f"/files/{file_id}",
            params={"fields": fields, "supportsAllDrives": "true"},
        )
        return DriveFile.model_validate(data)

    # -------------------------------------------------------------------------
    # PERMISSIONS
    # -------------------------------------------------------------------------

    async def list_permissions(self, file_id: str) -> List[DrivePermission]:
        """All permissions on a file (follows permissions.list pagination)."""
        permissions: List[DrivePermission] = []
        page_token: Optional[str] = None

        while True:
            params = {"fields": PERMISSION_FIELDS, "supportsAllDrives": "true"}
            if page_token:
                params["pageToken"] = page_token

            data = await self._make_request("GET", f"/files/{file_id}/permissions", params=params)
            permissions.extend(
                DrivePermission.model_validate(item) for item in data.get("permissions", [])
            )

            page_token = data.get("nextPageToken")
            if not page_token:
                return permissions

    # -------------------------------------------------------------------------
    # ACCESS VALIDATION
    # -------------------------------------------------------------------------

    async def _probe(self) -> None:
        await self._make_request("GET", "/about", params={"fields": "user"})
