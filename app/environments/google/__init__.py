"""
Google Environment Module - Google Workspace, Drive and Gmail integration.

Architecture:
=============
google/
├── __init__.py           # Module exports
├── api.py                # Shared authenticated request + error mapping
├── service_account.py    # Service-account access tokens (google-auth)
├── auth/                 # OAuth 2.0 client and scope constants
├── drive/                # Drive v3: spreadsheets and their permissions
├── gmail/                # Gmail v1: message metadata, batch delete
└── directory/            # Admin SDK: workspace roster

Two ways to get an access token:
================================
1. Individual users: OAuth consent (GoogleAuthClient) - tokens stored
   encrypted per provider ("google_drive", "gmail")
2. Workspace admins: service-account JSON key (ServiceAccountTokenProvider),
   optionally with domain-wide delegation

Either token works with the API clients:

    drive = GoogleDriveClient(access_token=token)
    page = await drive.list_files(SPREADSHEET_QUERY)
"""

from app.environments.google.auth import (
    GoogleAuthClient,
    DIRECTORY_SCOPES,
    DRIVE_OAUTH_SCOPES,
    DRIVE_SCOPES,
    GMAIL_OAUTH_SCOPES,
)
from app.environments.google.directory import GoogleDirectoryClient
from app.environments.google.drive import GoogleDriveClient, SPREADSHEET_QUERY
from app.environments.google.gmail import GoogleGmailClient, parse_from_header
from app.environments.google.service_account import ServiceAccountTokenProvider

__all__ = [
    "GoogleAuthClient",
    "GoogleDirectoryClient",
    "GoogleDriveClient",
    "GoogleGmailClient",
    "ServiceAccountTokenProvider",
    "DIRECTORY_SCOPES",
    "DRIVE_OAUTH_SCOPES",
    "DRIVE_SCOPES",
    "GMAIL_OAUTH_SCOPES",
    "SPREADSHEET_QUERY",
    "parse_from_header",
]
