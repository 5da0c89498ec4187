"""
Platform schemas - connecting SaaS platforms (service-account keys, OAuth).
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import Field

from app.schemas.common import CamelModel


# ---------------------------------------------------------------------------
# REQUEST SCHEMAS
# ---------------------------------------------------------------------------

class CredentialCreate(CamelModel):
    """
    Schema for POST /api/platforms/credentials.

    Example request body (service account):
    {
        "platform": "google_workspace",
        "credentialType": "service_account",
        "credentials": {"type": "service_account", "client_email": "...", ...}
    }

    credentials may be the JSON object itself or its text.
    """
    platform: str
    credential_type: str
    credentials: Union[Dict[str, Any], str]


# ---------------------------------------------------------------------------
# RESPONSE SCHEMAS
# ---------------------------------------------------------------------------

class CredentialOut(CamelModel):
    """A stored credential, without the secret itself."""
    platform: str
    credential_type: str
    is_active: bool
    created_at: datetime
    last_used_at: Optional[datetime] = None


class SupportedPlatform(CamelModel):
    id: str
    name: str
    credential_types: List[str]
    # False for platforms that can be stored but not yet discovered
    discovery_supported: bool = False


class PlatformStatus(CamelModel):
    platform: str
    connected: bool
    credential_type: Optional[str] = None
    last_used_at: Optional[datetime] = None
    oauth_connected: bool = False


class AuthorizeResponse(CamelModel):
    success: bool = True
    auth_url: str = Field(..., description="Google consent screen URL")
