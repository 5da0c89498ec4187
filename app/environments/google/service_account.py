"""
Service-account access tokens for Google Workspace.

A Workspace admin uploads a service-account JSON key. google-auth signs the
JWT-bearer grant with the key's private key and exchanges it for an access
token; with domain-wide delegation the token acts as `subject` (an admin
email for the Directory API, or any user for Drive).

The resulting token is used with the same httpx clients as OAuth tokens.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from app.environments.base import AuthenticationError


logger = logging.getLogger("shenv.environments.google.service_account")


class ServiceAccountTokenProvider:
    """
    Obtain access tokens from service-account credentials.

    Example:
        provider = ServiceAccountTokenProvider(
            info, scopes=DIRECTORY_SCOPES, subject="admin@example.com"
        )
        token = await provider.get_access_token()
        users = await GoogleDirectoryClient(token).list_all_users()
    """

    def __init__(
        self,
        service_account_info: Dict[str, Any],
        scopes: List[str],
        subject: Optional[str] = None,
    ):
        self.client_email = service_account_info.get("client_email")
        self.subject = subject

        try:
            credentials = service_account.Credentials.from_service_account_info(
                service_account_info, scopes=scopes
            )
        except (ValueError, KeyError) as e:
            raise AuthenticationError(f"Invalid service account credentials: {e}") from e

        if subject:
            credentials = credentials.with_subject(subject)

        self._credentials = credentials

    async def get_access_token(self) -> str:
        """
        Return a valid access token, refreshing when needed.

        google-auth refreshes synchronously (requests transport), so the
        refresh runs in a worker thread.

        Raises:
            AuthenticationError: If Google rejects the grant (bad key, missing
                delegation, unknown subject)
        """
        if not self._credentials.valid:
            logger.info(
                "Requesting service account token",
                extra={"client_email": self.client_email, "subject": self.subject},
            )
            try:
                await asyncio.to_thread(self._credentials.refresh, Request())
            except GoogleAuthError as e:
                logger.error(f"Service account token request failed: {e}")
                raise AuthenticationError(f"Service account authentication failed: {e}") from e

        return self._credentials.token
