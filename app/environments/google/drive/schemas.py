"""
Google Drive Schemas - Drive v3 file and permission resources.

Reference: https://developers.google.com/drive/api/reference/rest/v3
"""

from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field


class DrivePermission(BaseModel):
    """
    One sharing grant on a file.

    emailAddress is absent for "anyone" and "domain" grants.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    email_address: Optional[str] = Field(None, alias="emailAddress")
    role: Optional[str] = None
    type: Optional[str] = None
    display_name: Optional[str] = Field(None, alias="displayName")
    domain: Optional[str] = None


class DriveUser(BaseModel):
    """A file owner as reported by Drive."""
    model_config = ConfigDict(populate_by_name=True)

    email_address: Optional[str] = Field(None, alias="emailAddress")
    display_name: Optional[str] = Field(None, alias="displayName")


class DriveFile(BaseModel):
    """
    A Drive file with the fields discovery asks for.

    Example:
    {
        "id": "1abc...",
        "name": "Budget 2024",
        "webViewLink": "https://docs.google.com/spreadsheets/d/1abc.../edit",
        "owners": [{"emailAddress": "owner@example.com"}],
        "createdTime": "2024-01-15T10:00:00.000Z",
        "modifiedTime": "2024-06-01T08:30:00.000Z",
        "permissions": [{"id": "anyoneWithLink", "type": "anyone", "role": "reader"}]
    }
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: Optional[str] = None
    mime_type: Optional[str] = Field(None, alias="mimeType")
    web_view_link: Optional[str] = Field(None, alias="webViewLink")
    owners: List[DriveUser] = Field(default_factory=list)
    created_time: Optional[datetime] = Field(None, alias="createdTime")
    modified_time: Optional[datetime] = Field(None, alias="modifiedTime")
    permissions: List[DrivePermission] = Field(default_factory=list)


class DriveFileList(BaseModel):
    """One page of files.list."""
    model_config = ConfigDict(populate_by_name=True)

    files: List[DriveFile] = Field(default_factory=list)
    next_page_token: Optional[str] = Field(None, alias="nextPageToken")
