"""
Platforms router - connecting SaaS platforms.

Two ways to connect Google:
1. Workspace admins upload a service-account JSON key
   (POST /api/platforms/credentials, platform "google_workspace")
2. Individual users grant Drive access through OAuth
   (POST /api/platforms/google/oauth/authorize → Google → GET .../callback)

Other platforms can be stored but have no discovery implementation yet.
"""

import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.errors import ApiError
from app.db.session import get_db
from app.deps import get_current_user
from app.models.oauth_credential import PROVIDER_GOOGLE_DRIVE
from app.models.platform_credential import (
    CREDENTIAL_TYPES,
    PLATFORM_GOOGLE_WORKSPACE,
    PLATFORMS,
)
from app.models.user import User
from app.repositories.oauth_credential import OAuthCredentialRepository
from app.repositories.platform_credential import PlatformCredentialRepository
from app.routers.oauth_callback import complete_oauth_callback
from app.schemas.common import MessageResponse
from app.schemas.platforms import (
    AuthorizeResponse,
    CredentialCreate,
    CredentialOut,
    PlatformStatus,
    SupportedPlatform,
)
from app.services.credential_service import credential_service
from app.services.oauth_token_service import get_drive_oauth_service

logger = logging.getLogger("shenv.routers.platforms")

router = APIRouter(prefix="/api/platforms", tags=["platforms"])


PLATFORM_NAMES = {
    PLATFORM_GOOGLE_WORKSPACE: "Google Workspace",
    "microsoft_365": "Microsoft 365",
    "zoho": "Zoho",
    "dropbox": "Dropbox",
    "box": "Box",
    "other": "Other",
}


def _check_platform(platform: str) -> None:
    if platform not in PLATFORMS:
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            f"Unsupported platform: {platform}",
            code="INVALID_PLATFORM",
            extra={"supportedPlatforms": list(PLATFORMS)},
        )


# ---------------------------------------------------------------------------
# GET /api/platforms/supported
# ---------------------------------------------------------------------------
@router.get("/supported")
def supported_platforms():
    """Platforms a credential can be stored for (public)."""
    platforms = [
        SupportedPlatform(
            id=platform,
            name=PLATFORM_NAMES[platform],
            credential_types=list(CREDENTIAL_TYPES),
            discovery_supported=platform == PLATFORM_GOOGLE_WORKSPACE,
        )
        for platform in PLATFORMS
    ]
    return {"success": True, "data": {"platforms": platforms, "count": len(platforms)}}


# ---------------------------------------------------------------------------
# CREDENTIALS
# ---------------------------------------------------------------------------
@router.post("/credentials", status_code=status.HTTP_201_CREATED)
def store_credentials(
    payload: CredentialCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Validate (service accounts), encrypt and store platform credentials.

    Raises:
        400: Unknown platform/credential type, or an invalid service-account key
    """
    _check_platform(payload.platform)
    if payload.credential_type not in CREDENTIAL_TYPES:
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            f"Unsupported credential type: {payload.credential_type}",
            code="INVALID_CREDENTIAL_TYPE",
        )

    raw = payload.credentials
    if isinstance(raw, dict):
        raw = json.dumps(raw)

    # CredentialError (400) propagates to the service-error handler
    stored = credential_service.store_platform_credentials(
        current_user.id, payload.platform, raw, payload.credential_type, db
    )
    return {
        "success": True,
        "data": {"credential": CredentialOut.model_validate(stored)},
        "message": f"{PLATFORM_NAMES[payload.platform]} credentials saved",
    }


@router.get("/credentials")
def list_credentials(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    credentials = PlatformCredentialRepository(db).find_all_by_user(current_user.id)
    return {
        "success": True,
        "data": {"credentials": [CredentialOut.model_validate(c) for c in credentials]},
    }


@router.delete("/credentials/{platform}", response_model=MessageResponse)
def delete_credentials(
    platform: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _check_platform(platform)
    if not PlatformCredentialRepository(db).delete(current_user.id, platform):
        raise ApiError(
            status.HTTP_404_NOT_FOUND,
            f"No credentials stored for {platform}",
            code="NOT_FOUND",
        )

    logger.info(f"Deleted {platform} credentials for user {current_user.id}")
    return MessageResponse(message=f"{PLATFORM_NAMES[platform]} credentials deleted")


# ---------------------------------------------------------------------------
# GOOGLE DRIVE OAUTH
# ---------------------------------------------------------------------------
@router.post("/google/oauth/authorize", response_model=AuthorizeResponse)
def drive_authorize(current_user: User = Depends(get_current_user)):
    """Consent-screen URL for Drive access; the frontend redirects the browser to it."""
    auth_url = get_drive_oauth_service().get_authorization_url(current_user.id)
    return AuthorizeResponse(auth_url=auth_url)


@router.get("/google/oauth/callback")
async def drive_callback(
    code: Optional[str] = Query(None, description="Authorization code from Google"),
    state: Optional[str] = Query(None, description="Shenv user id"),
    error: Optional[str] = Query(None, description="Error from Google"),
    db: Session = Depends(get_db),
):
    return await complete_oauth_callback(
        "drive", PROVIDER_GOOGLE_DRIVE, get_drive_oauth_service(), code, state, error, db
    )


@router.delete("/google/oauth/revoke", response_model=MessageResponse)
async def drive_revoke(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    disconnected = await credential_service.disconnect_oauth_account(
        current_user.id, PROVIDER_GOOGLE_DRIVE, get_drive_oauth_service(), db
    )
    if not disconnected:
        raise ApiError(
            status.HTTP_404_NOT_FOUND, "Google Drive is not connected", code="NOT_CONNECTED"
        )
    return MessageResponse(message="Google Drive disconnected")


# ---------------------------------------------------------------------------
# GET /api/platforms/{platform}/status
# ---------------------------------------------------------------------------
# Declared last so the literal /google/oauth/... paths are matched first
@router.get("/{platform}/status")
def platform_status(
    platform: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _check_platform(platform)
    credential = PlatformCredentialRepository(db).find_by_user_and_platform(
        current_user.id, platform
    )

    oauth_connected = False
    if platform == PLATFORM_GOOGLE_WORKSPACE:
        oauth_connected = OAuthCredentialRepository(db).has_tokens(
            current_user.id, PROVIDER_GOOGLE_DRIVE
        )

    return {
        "success": True,
        "data": PlatformStatus(
            platform=platform,
            connected=bool(credential and credential.is_active),
            credential_type=credential.credential_type if credential else None,
            last_used_at=credential.last_used_at if credential else None,
            oauth_connected=oauth_connected,
        ),
    }
