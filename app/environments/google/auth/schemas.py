"""
Google OAuth Schemas - scopes and token/userinfo payloads.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, List
from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# OAUTH SCOPE CONSTANTS
# ---------------------------------------------------------------------------
# Reference: https://developers.google.com/identity/protocols/oauth2/scopes

USERINFO_EMAIL_SCOPE = "https://www.googleapis.com/auth/userinfo.email"
USERINFO_PROFILE_SCOPE = "https://www.googleapis.com/auth/userinfo.profile"

PROFILE_SCOPES = [
    USERINFO_EMAIL_SCOPE,
    USERINFO_PROFILE_SCOPE,
]

# Drive - read-only, we only inspect files and their sharing
DRIVE_SCOPES = [
    "https://www.googleapis.com/auth/drive.readonly",
    "https://www.googleapis.com/auth/drive.metadata.readonly",
]

# Gmail - modify is needed to delete messages from a sender
GMAIL_SCOPES = [
    "https://www.googleapis.com/auth/gmail.readonly",
    "https://www.googleapis.com/auth/gmail.modify",
]

# Admin SDK - workspace roster, used with a delegated service account
DIRECTORY_SCOPES = [
    "https://www.googleapis.com/auth/admin.directory.user.readonly",
]

# What each consent flow asks for
DRIVE_OAUTH_SCOPES = DRIVE_SCOPES + PROFILE_SCOPES
GMAIL_OAUTH_SCOPES = GMAIL_SCOPES + [USERINFO_EMAIL_SCOPE]


# ---------------------------------------------------------------------------
# CONFIGURATION
# ---------------------------------------------------------------------------

class GoogleAuthConfig(BaseModel):
    """OAuth client configuration for one consent flow."""
    client_id: str = Field(..., min_length=1, description="Google OAuth Client ID")
    client_secret: str = Field(..., min_length=1, description="Google OAuth Client Secret")
    redirect_uri: str = Field(..., min_length=1, description="OAuth callback URL")


# ---------------------------------------------------------------------------
# TOKEN RESPONSES
# ---------------------------------------------------------------------------

class GoogleTokenResponse(BaseModel):
    """
    Response from Google's token endpoint.

    Example:
    {
        "access_token": "ya29.a0AfB_byC...",
        "expires_in": 3599,
        "refresh_token": "1//0eXyz...",
        "scope": "https://www.googleapis.com/auth/drive.readonly ...",
        "token_type": "Bearer"
    }
    """
    access_token: str = Field(..., description="OAuth access token")
    token_type: str = Field(default="Bearer", description="Token type (usually Bearer)")
    expires_in: Optional[int] = Field(None, description="Seconds until expiration")
    refresh_token: Optional[str] = Field(None, description="Refresh token for renewal")
    scope: Optional[str] = Field(None, description="Space-separated scopes granted")
    id_token: Optional[str] = Field(None, description="JWT with user info (OpenID)")

    def get_scopes_list(self) -> List[str]:
        """Convert space-separated scope string to list."""
        if self.scope:
            return self.scope.split()
        return []

    def get_expires_at(self) -> Optional[datetime]:
        """Calculate expiration datetime from expires_in seconds."""
        if self.expires_in:
            return datetime.now(timezone.utc) + timedelta(seconds=self.expires_in)
        return None


# ---------------------------------------------------------------------------
# USER INFO
# ---------------------------------------------------------------------------

class GoogleUserInfo(BaseModel):
    """
    User information from Google's userinfo endpoint.

    Example:
    {
        "sub": "123456789",
        "email": "user@gmail.com",
        "email_verified": true,
        "name": "John Doe",
        "picture": "https://lh3.googleusercontent.com/a/..."
    }
    """
    sub: str = Field(..., description="Unique Google user ID")
    email: Optional[str] = Field(None, description="User's email address")
    email_verified: Optional[bool] = Field(None, description="Is email verified?")
    name: Optional[str] = Field(None, description="User's display name")
    picture: Optional[str] = Field(None, description="Profile picture URL")
