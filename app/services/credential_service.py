"""
Credential Service - validation, encryption and retrieval of stored credentials.

Two kinds of credentials live in the database, always encrypted:

1. Platform credentials (platform_credentials): a Google Workspace
   service-account JSON key uploaded by an admin
2. OAuth tokens (oauth_credentials): Drive / Gmail tokens of individual users

get_valid_access_token() is the single place OAuth tokens are decrypted,
refreshed when expired, and written back.
"""

import json
import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from app.core.encryption import EncryptionError, decrypt, encrypt
from app.environments.base import OAuthTokens, UserInfo
from app.models.platform_credential import (
    CREDENTIAL_TYPE_SERVICE_ACCOUNT,
    PLATFORM_GOOGLE_WORKSPACE,
    PlatformCredential,
)
from app.models.oauth_credential import OAuthCredential
from app.repositories.oauth_credential import OAuthCredentialRepository
from app.repositories.platform_credential import PlatformCredentialRepository
from app.services.errors import CredentialError, OAuthServiceError
from app.services.oauth_token_service import OAuthTokenService


logger = logging.getLogger("shenv.services.credentials")

SERVICE_ACCOUNT_REQUIRED_FIELDS = ("client_email", "private_key", "project_id")


def validate_service_account(json_text: str) -> Dict[str, Any]:
    """
    Parse and check a service-account JSON key.

    Returns:
        The parsed key

    Raises:
        CredentialError: If it is not a JSON object of type "service_account"
            with client_email, private_key and project_id
    """
    try:
        info = json.loads(json_text)
    except (TypeError, ValueError) as exc:
        raise CredentialError(f"Invalid service account JSON: {exc}") from exc

    if not isinstance(info, dict):
        raise CredentialError("Invalid service account JSON: expected an object")

    if info.get("type") != "service_account":
        raise CredentialError('Invalid service account JSON: "type" must be "service_account"')

    missing = [name for name in SERVICE_ACCOUNT_REQUIRED_FIELDS if not info.get(name)]
    if missing:
        raise CredentialError(
            f"Invalid service account JSON: missing {', '.join(missing)}"
        )

    return info


class CredentialService:

    # -------------------------------------------------------------------------
    # PLATFORM CREDENTIALS
    # -------------------------------------------------------------------------

    def store_platform_credentials(
        self,
        user_id: int,
        platform: str,
        credentials: str,
        credential_type: str,
        db: Session,
    ) -> PlatformCredential:
        """
        Validate (service accounts only), encrypt and upsert credentials.

        Args:
            credentials: The raw credential document (JSON text)
        """
        if credential_type == CREDENTIAL_TYPE_SERVICE_ACCOUNT:
            validate_service_account(credentials)

        try:
            encrypted = encrypt(credentials)
        except EncryptionError as exc:
            raise CredentialError(f"Failed to encrypt credentials: {exc}") from exc

        stored = PlatformCredentialRepository(db).upsert(
            user_id, platform, encrypted, credential_type
        )
        logger.info(
            f"Stored {platform} credentials for user {user_id}",
            extra={"credential_type": credential_type},
        )
        return stored

    def get_service_account(self, user_id: int, db: Session) -> Optional[Dict[str, Any]]:
        """
        The decrypted service-account key of the user's active Google
        Workspace connection, or None when there is none.
        """
        repo = PlatformCredentialRepository(db)
        credential = repo.find_by_user_and_platform(user_id, PLATFORM_GOOGLE_WORKSPACE)
        if (
            credential is None
            or not credential.is_active
            or credential.credential_type != CREDENTIAL_TYPE_SERVICE_ACCOUNT
        ):
            return None

        try:
            info = json.loads(decrypt(credential.credentials))
        except (EncryptionError, ValueError) as exc:
            raise CredentialError(f"Stored service account could not be read: {exc}") from exc

        repo.mark_used(credential)
        return info

    # -------------------------------------------------------------------------
    # OAUTH TOKENS
    # -------------------------------------------------------------------------

    def store_oauth_tokens(
        self,
        user_id: int,
        provider: str,
        tokens: OAuthTokens,
        db: Session,
    ) -> OAuthCredential:
        """Encrypt both tokens and upsert them for (user, provider)."""
        if not tokens.refresh_token:
            raise CredentialError("Cannot store OAuth tokens without a refresh token")

        try:
            access_token = encrypt(tokens.access_token)
            refresh_token = encrypt(tokens.refresh_token)
        except EncryptionError as exc:
            raise CredentialError(f"Failed to encrypt OAuth tokens: {exc}") from exc

        credential = OAuthCredentialRepository(db).upsert(
            user_id=user_id,
            provider=provider,
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=tokens.expires_at,
            scope=tokens.scope,
        )
        logger.info(f"Stored {provider} tokens for user {user_id}")
        return credential

    def get_refresh_token(self, user_id: int, provider: str, db: Session) -> Optional[str]:
        """Decrypted refresh token, or None when not connected."""
        credential = OAuthCredentialRepository(db).find_by_user(user_id, provider)
        if credential is None:
            return None
        try:
            return decrypt(credential.refresh_token)
        except EncryptionError as exc:
            raise CredentialError(f"Stored {provider} tokens could not be read: {exc}") from exc

    async def get_valid_access_token(
        self,
        user_id: int,
        provider: str,
        oauth_service: OAuthTokenService,
        db: Session,
    ) -> str:
        """
        A usable access token for (user, provider).

        Expired tokens (5-minute buffer) are refreshed and the new encrypted
        access token and expiry are written back before returning.

        Raises:
            CredentialError: No stored tokens, unreadable tokens, or refresh failed
        """
        repo = OAuthCredentialRepository(db)
        credential = repo.find_by_user(user_id, provider)
        if credential is None:
            raise CredentialError(f"No {provider} tokens found. Please connect your account.")

        try:
            if not credential.is_expired():
                return decrypt(credential.access_token)
            refresh_token = decrypt(credential.refresh_token)
        except EncryptionError as exc:
            raise CredentialError(f"Stored {provider} tokens could not be read: {exc}") from exc

        logger.info(f"Refreshing expired {provider} token for user {user_id}")
        try:
            tokens = await oauth_service.refresh_access_token(refresh_token)
        except OAuthServiceError as exc:
            raise CredentialError(
                f"Failed to refresh {provider} token: {exc}. Please reconnect your account."
            ) from exc

        repo.update_access_token(credential, encrypt(tokens.access_token), tokens.expires_at)
        return tokens.access_token

    # -------------------------------------------------------------------------
    # CONNECT / DISCONNECT
    # -------------------------------------------------------------------------

    async def connect_oauth_account(
        self,
        user_id: int,
        provider: str,
        oauth_service: OAuthTokenService,
        code: str,
        db: Session,
    ) -> UserInfo:
        """
        Finish a consent flow: exchange the code, store the tokens, and
        confirm the Google account behind them.

        Raises:
            OAuthServiceError: Exchange or verification failed
            CredentialError: Tokens could not be stored
        """
        tokens = await oauth_service.exchange_code_for_tokens(code)
        self.store_oauth_tokens(user_id, provider, tokens, db)
        user_info = await oauth_service.verify_token(tokens.access_token)

        logger.info(f"Connected {provider} for user {user_id}")
        return user_info

    async def disconnect_oauth_account(
        self,
        user_id: int,
        provider: str,
        oauth_service: OAuthTokenService,
        db: Session,
    ) -> bool:
        """
        Revoke at Google (best effort) and delete the stored tokens.

        Returns:
            False when there was nothing to disconnect
        """
        repo = OAuthCredentialRepository(db)
        if repo.find_by_user(user_id, provider) is None:
            return False

        try:
            refresh_token = self.get_refresh_token(user_id, provider, db)
            if refresh_token:
                await oauth_service.revoke_token(refresh_token)
        except (CredentialError, OAuthServiceError) as exc:
            # The local tokens are removed either way
            logger.warning(f"Failed to revoke {provider} token for user {user_id}: {exc}")

        repo.delete_by_user(user_id, provider)
        logger.info(f"Disconnected {provider} for user {user_id}")
        return True


credential_service = CredentialService()
