"""
Google OAuth Client - authorization code flow against Google's OAuth 2.0 endpoints.

OAuth 2.0 Flow Implementation:
==============================
1. get_authorization_url() → User redirected to Google
2. exchange_code_for_tokens() → Called in callback, gets tokens
3. refresh_access_token() → Renew expired access tokens
4. get_user_info() → Fetch the Google account's email/name
5. revoke_token() → Disconnect

The client is stateless apart from its configuration; the OAuth token
services (app.services.oauth_token_service) hold one per consent flow.

References:
===========
- OAuth 2.0: https://developers.google.com/identity/protocols/oauth2
- Token endpoint: https://oauth2.googleapis.com/token
- Userinfo: https://www.googleapis.com/oauth2/v3/userinfo
"""

import logging
from typing import List, Optional
from urllib.parse import urlencode

import httpx

from app.environments.base import (
    EnvironmentProvider,
    OAuthTokens,
    UserInfo,
    AuthenticationError,
    TokenExpiredError,
)
from app.environments.google.auth.schemas import (
    GoogleAuthConfig,
    GoogleTokenResponse,
    GoogleUserInfo,
)


logger = logging.getLogger("shenv.environments.google.auth")

REQUEST_TIMEOUT = 30.0


def _error_message(response: httpx.Response) -> str:
    """Pull error_description out of a Google error body, falling back to the raw text."""
    try:
        error_data = response.json() if response.content else {}
    except ValueError:
        return response.text
    if isinstance(error_data, dict):
        return error_data.get("error_description") or error_data.get("error") or response.text
    return response.text


def _parse_body(response: httpx.Response, model, error_cls, what: str):
    """Validate a 200 body; malformed JSON or missing fields raise error_cls."""
    try:
        return model.model_validate(response.json())
    except ValueError as e:
        logger.error(f"Malformed {what} response from Google: {e}")
        raise error_cls(f"Malformed {what} response: {e}") from e


class GoogleAuthClient(EnvironmentProvider):
    """
    Google OAuth 2.0 Client implementation.

    Example Usage:
        client = GoogleAuthClient(GoogleAuthConfig(
            client_id="...", client_secret="...", redirect_uri="...",
        ))

        auth_url = client.get_authorization_url(scopes=DRIVE_OAUTH_SCOPES, state="42")
        tokens = await client.exchange_code_for_tokens(code="abc123")
        user_info = await client.get_user_info(tokens.access_token)
    """

    provider_name = "google"

    # Google OAuth endpoints
    AUTHORIZATION_URL = "https://accounts.google.com/o/oauth2/v2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"
    USERINFO_URL = "https://www.googleapis.com/oauth2/v3/userinfo"
    REVOKE_URL = "https://oauth2.googleapis.com/revoke"

    def __init__(self, config: GoogleAuthConfig):
        self.client_id = config.client_id
        self.client_secret = config.client_secret
        self.redirect_uri = config.redirect_uri

    # -------------------------------------------------------------------------
    # AUTHORIZATION URL
    # -------------------------------------------------------------------------

    def get_authorization_url(
        self,
        scopes: List[str],
        state: str,
        redirect_uri: Optional[str] = None,
        access_type: str = "offline",
        prompt: str = "consent",
    ) -> str:
        """
        Generate the Google OAuth authorization URL.

        Args:
            scopes: OAuth scopes to request
            state: Opaque value echoed back to the callback
            redirect_uri: Override default callback URL
            access_type: "offline" so Google issues a refresh token
            prompt: "consent" forces the consent screen, which guarantees a
                    refresh token even on re-authorization

        Returns:
            Full authorization URL to redirect the user to
        """
        params = {
            "client_id": self.client_id,
            "redirect_uri": redirect_uri or self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(scopes),
            "state": state,
            "access_type": access_type,
            "prompt": prompt,
        }

        auth_url = f"{self.AUTHORIZATION_URL}?{urlencode(params)}"

        logger.info(
            f"Generated Google auth URL with {len(scopes)} scopes",
            extra={"scopes": scopes},
        )

        return auth_url

    # -------------------------------------------------------------------------
    # TOKEN EXCHANGE
    # -------------------------------------------------------------------------

    async def exchange_code_for_tokens(
        self,
        code: str,
        redirect_uri: Optional[str] = None,
    ) -> OAuthTokens:
        """
        Exchange authorization code for access and refresh tokens.

        Raises:
            AuthenticationError: If token exchange fails
        """
        token_data = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": redirect_uri or self.redirect_uri,
        }

        logger.info("Exchanging authorization code for tokens")

        async with httpx.AsyncClient() as client:
            try:
                response = await client.post(
                    self.TOKEN_URL,
                    data=token_data,
                    timeout=REQUEST_TIMEOUT,
                )
            except httpx.RequestError as e:
                logger.error(f"Network error during token exchange: {e}")
                raise AuthenticationError(f"Network error: {e}") from e

        if response.status_code != 200:
            error_msg = _error_message(response)
            logger.error(f"Token exchange failed: {error_msg}")
            raise AuthenticationError(f"Token exchange failed: {error_msg}")

        token_response = _parse_body(response, GoogleTokenResponse, AuthenticationError, "token")

        logger.info(
            "Successfully obtained Google tokens",
            extra={
                "has_refresh_token": token_response.refresh_token is not None,
                "expires_in": token_response.expires_in,
            },
        )

        return OAuthTokens(
            access_token=token_response.access_token,
            token_type=token_response.token_type,
            refresh_token=token_response.refresh_token,
            expires_at=token_response.get_expires_at(),
            scopes=token_response.get_scopes_list(),
        )

    # -------------------------------------------------------------------------
    # TOKEN REFRESH
    # -------------------------------------------------------------------------

    async def refresh_access_token(self, refresh_token: str) -> OAuthTokens:
        """
        Use refresh token to get a new access token.

        Raises:
            TokenExpiredError: If refresh token is invalid or revoked
        """
        refresh_data = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        }

        logger.info("Refreshing access token")

        async with httpx.AsyncClient() as client:
            try:
                response = await client.post(
                    self.TOKEN_URL,
                    data=refresh_data,
                    timeout=REQUEST_TIMEOUT,
                )
            except httpx.RequestError as e:
                logger.error(f"Network error during token refresh: {e}")
                raise TokenExpiredError(f"Network error: {e}") from e

        if response.status_code != 200:
            error_msg = _error_message(response)
            logger.error(f"Token refresh failed: {error_msg}")
            raise TokenExpiredError(f"Token refresh failed: {error_msg}")

        token_response = _parse_body(response, GoogleTokenResponse, TokenExpiredError, "token")

        logger.info(
            "Successfully refreshed access token",
            extra={"expires_in": token_response.expires_in},
        )

        # Google usually does not return a new refresh_token; keep the old one
        return OAuthTokens(
            access_token=token_response.access_token,
            token_type=token_response.token_type,
            refresh_token=token_response.refresh_token or refresh_token,
            expires_at=token_response.get_expires_at(),
            scopes=token_response.get_scopes_list(),
        )

    # -------------------------------------------------------------------------
    # USER INFO
    # -------------------------------------------------------------------------

    async def get_user_info(self, access_token: str) -> UserInfo:
        """
        Get the Google account behind an access token.

        Raises:
            AuthenticationError: If the token is rejected
        """
        async with httpx.AsyncClient() as client:
            try:
                response = await client.get(
                    self.USERINFO_URL,
                    headers={"Authorization": f"Bearer {access_token}"},
                    timeout=REQUEST_TIMEOUT,
                )
            except httpx.RequestError as e:
                logger.error(f"Network error fetching user info: {e}")
                raise AuthenticationError(f"Network error: {e}") from e

        if response.status_code != 200:
            logger.error(f"Failed to fetch user info: {response.status_code}")
            raise AuthenticationError(f"Failed to fetch user info: {_error_message(response)}")

        google_user = _parse_body(response, GoogleUserInfo, AuthenticationError, "userinfo")

        return UserInfo(
            provider_user_id=google_user.sub,
            email=google_user.email,
            name=google_user.name,
            picture_url=google_user.picture,
            extra_data={"email_verified": google_user.email_verified},
        )

    # -------------------------------------------------------------------------
    # TOKEN REVOCATION
    # -------------------------------------------------------------------------

    async def revoke_token(self, token: str) -> bool:
        """
        Revoke an access or refresh token.

        Returns:
            True if Google accepted the revocation

        Raises:
            AuthenticationError: On network failure
        """
        async with httpx.AsyncClient() as client:
            try:
                response = await client.post(
                    self.REVOKE_URL,
                    params={"token": token},
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                    timeout=REQUEST_TIMEOUT,
                )
            except httpx.RequestError as e:
                logger.error(f"Network error during token revocation: {e}")
                raise AuthenticationError(f"Network error: {e}") from e

        success = response.status_code == 200
        if success:
            logger.info("Successfully revoked Google token")
        else:
            logger.warning(f"Token revocation returned status {response.status_code}")

        return success
