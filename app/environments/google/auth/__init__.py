"""
Google Auth Module - OAuth 2.0 for Google Drive and Gmail.

Individual users grant Drive access (spreadsheet discovery) and Gmail
access (sender cleanup) through two separate consent flows that share one
OAuth client and differ in scopes and redirect URI.
"""

from app.environments.google.auth.client import GoogleAuthClient
from app.environments.google.auth.schemas import (
    GoogleAuthConfig,
    GoogleTokenResponse,
    GoogleUserInfo,
    DIRECTORY_SCOPES,
    DRIVE_OAUTH_SCOPES,
    DRIVE_SCOPES,
    GMAIL_OAUTH_SCOPES,
    GMAIL_SCOPES,
    PROFILE_SCOPES,
)

__all__ = [
    "GoogleAuthClient",
    "GoogleAuthConfig",
    "GoogleTokenResponse",
    "GoogleUserInfo",
    "DIRECTORY_SCOPES",
    "DRIVE_OAUTH_SCOPES",
    "DRIVE_SCOPES",
    "GMAIL_OAUTH_SCOPES",
    "GMAIL_SCOPES",
    "PROFILE_SCOPES",
]
