"""
OAuth Token Service - Google consent flow for Drive and Gmail connections.

Two instances share this implementation:

    get_drive_oauth_service()  → scopes DRIVE_OAUTH_SCOPES, Drive redirect URI
    get_gmail_oauth_service()  → scopes GMAIL_OAUTH_SCOPES, Gmail redirect URI

Each instance builds its GoogleAuthClient lazily from settings on first use
and keeps it. The two module-level instances are the only shared mutable
state in the process.

Tokens are returned as plain OAuthTokens; storing them (encrypted) is the
caller's job (see app.services.credential_service).

Every failure is raised as OAuthServiceError("<Operation> failed: <cause>").
No retries.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from pydantic import ValidationError

from app.core.config import settings
from app.environments.base import EnvironmentError, OAuthTokens, UserInfo
from app.environments.google.auth import (
    DRIVE_OAUTH_SCOPES,
    GMAIL_OAUTH_SCOPES,
    GoogleAuthClient,
    GoogleAuthConfig,
)
from app.models.oauth_credential import PROVIDER_GMAIL, PROVIDER_GOOGLE_DRIVE
from app.services.errors import OAuthServiceError


logger = logging.getLogger("shenv.services.oauth")

# Used when Google omits expires_in
DEFAULT_TOKEN_LIFETIME = timedelta(hours=1)


class OAuthTokenService:
    """
    One Google consent flow (a provider, its scopes and its redirect URI).

    Args:
        provider: "google_drive" or "gmail"
        scopes: Scopes requested on the consent screen
        redirect_uri_setting: Name of the Settings field holding the callback URL
    """

    def __init__(self, provider: str, scopes: List[str], redirect_uri_setting: str):
        self.provider = provider
        self.scopes = list(scopes)
        self.redirect_uri_setting = redirect_uri_setting
        self._client: Optional[GoogleAuthClient] = None

    # -------------------------------------------------------------------------
    # CLIENT
    # -------------------------------------------------------------------------

    @property
    def client(self) -> GoogleAuthClient:
        """
        The OAuth client, built from settings on first access.

        Raises:
            OAuthServiceError: If client id/secret/redirect URI are not configured
        """
        if self._client is None:
            try:
                config = GoogleAuthConfig(
                    client_id=settings.GOOGLE_OAUTH_CLIENT_ID,
                    client_secret=settings.GOOGLE_OAUTH_CLIENT_SECRET,
                    redirect_uri=getattr(settings, self.redirect_uri_setting),
                )
            except ValidationError as exc:
                raise OAuthServiceError(
                    "Google OAuth is not configured. Set GOOGLE_OAUTH_CLIENT_ID "
                    "and GOOGLE_OAUTH_CLIENT_SECRET."
                ) from exc
            self._client = GoogleAuthClient(config)
        return self._client

    # -------------------------------------------------------------------------
    # OPERATIONS
    # -------------------------------------------------------------------------

    def get_authorization_url(self, user_id: int) -> str:
        """
        Consent-screen URL for a user. The state parameter carries the user id
        so the unauthenticated callback knows whose tokens these are.
        """
        client = self.client
        try:
            url = client.get_authorization_url(
                scopes=self.scopes,
                state=str(user_id),
                access_type="offline",
                prompt="consent",
            )
        except Exception as exc:
            raise OAuthServiceError(f"Authorization URL generation failed: {exc}") from exc

        logger.info(f"Generated {self.provider} authorization URL for user {user_id}")
        return url

    async def exchange_code_for_tokens(self, code: str) -> OAuthTokens:
        """
        Trade the callback code for tokens.

        Both tokens are required: without a refresh token the connection
        would silently die after an hour.
        """
        client = self.client
        try:
            tokens = await client.exchange_code_for_tokens(code)
            if not tokens.access_token:
                raise OAuthServiceError("no access token returned")
            if not tokens.refresh_token:
                raise OAuthServiceError("no refresh token returned")
        except (EnvironmentError, OAuthServiceError) as exc:
            logger.error(f"{self.provider} token exchange failed: {exc}")
            raise OAuthServiceError(f"Token exchange failed: {exc}") from exc

        if tokens.expires_at is None:
            tokens.expires_at = datetime.now(timezone.utc) + DEFAULT_TOKEN_LIFETIME

        logger.info(f"{self.provider} tokens obtained")
        return tokens

    async def refresh_access_token(self, refresh_token: str) -> OAuthTokens:
        client = self.client
        try:
            tokens = await client.refresh_access_token(refresh_token)
        except EnvironmentError as exc:
            logger.error(f"{self.provider} token refresh failed: {exc}")
            raise OAuthServiceError(f"Token refresh failed: {exc}") from exc

        if tokens.expires_at is None:
            tokens.expires_at = datetime.now(timezone.utc) + DEFAULT_TOKEN_LIFETIME
        return tokens

    async def revoke_token(self, token: str) -> None:
        """Revoke a token at Google. Raises when Google does not confirm."""
        client = self.client
        try:
            revoked = await client.revoke_token(token)
        except EnvironmentError as exc:
            raise OAuthServiceError(f"Token revocation failed: {exc}") from exc

        if not revoked:
            raise OAuthServiceError("Token revocation failed: Google did not confirm revocation")
        logger.info(f"{self.provider} token revoked")

    async def verify_token(self, access_token: str) -> UserInfo:
        """Resolve the Google account behind an access token; it must have an email."""
        client = self.client
        try:
            user_info = await client.get_user_info(access_token)
        except EnvironmentError as exc:
            raise OAuthServiceError(f"Token verification failed: {exc}") from exc

        if not user_info.email:
            raise OAuthServiceError("Token verification failed: no email in Google profile")
        return user_info


# ---------------------------------------------------------------------------
# MODULE-LEVEL ACCESSORS
# ---------------------------------------------------------------------------
_drive_oauth_service: Optional[OAuthTokenService] = None
_gmail_oauth_service: Optional[OAuthTokenService] = None


def get_drive_oauth_service() -> OAuthTokenService:
    global _drive_oauth_service
    if _drive_oauth_service is None:
        _drive_oauth_service = OAuthTokenService(
            provider=PROVIDER_GOOGLE_DRIVE,
            scopes=DRIVE_OAUTH_SCOPES,
            redirect_uri_setting="GOOGLE_DRIVE_OAUTH_REDIRECT_URI",
        )
    return _drive_oauth_service


def get_gmail_oauth_service() -> OAuthTokenService:
    global _gmail_oauth_service
    if _gmail_oauth_service is None:
        _gmail_oauth_service = OAuthTokenService(
            provider=PROVIDER_GMAIL,
            scopes=GMAIL_OAUTH_SCOPES,
            redirect_uri_setting="GOOGLE_GMAIL_OAUTH_REDIRECT_URI",
        )
    return _gmail_oauth_service
