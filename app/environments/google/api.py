"""
Shared request handling for Google REST API clients.

Drive, Gmail and Directory clients all authenticate the same way (Bearer
access token) and map failures the same way:

    401 → APIError(status_code=401)   token expired or revoked
    403 → ScopeNotGrantedError         missing scope
    403 → APIError(status_code=403)   no access to the resource
    404 → APIError(status_code=404)
    other non-2xx → APIError with the response status

No retries: a failure surfaces immediately to the calling service.
"""

import logging
from typing import Any, Optional

import httpx

from app.environments.base import EnvironmentService, APIError, ScopeNotGrantedError


logger = logging.getLogger("shenv.environments.google")

REQUEST_TIMEOUT = 30.0

ERROR_UNAUTHORIZED = "Google rejected the access token. Please reconnect your account."
ERROR_MISSING_SCOPE = "The Google connection is missing a required permission. Please reconnect."
ERROR_FORBIDDEN = "Access to this Google resource is forbidden."
ERROR_NOT_FOUND = "The requested Google resource was not found."


class GoogleAPIClient(EnvironmentService):
    """
    Base class for Google API clients.

    Subclasses set BASE_URL and build their endpoints on top of
    _make_request().
    """

    BASE_URL = ""

    def __init__(self, access_token: str):
        """
        Args:
            access_token: Google OAuth or service-account access token
        """
        self.access_token = access_token

    def _get_headers(self) -> dict:
        """Get authorization headers for API requests."""
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Accept": "application/json",
        }

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Any] = None,
        json: Optional[Any] = None,
    ) -> dict:
        """
        Make an authenticated request to the API.

        Returns:
            Parsed JSON response ({} for empty bodies such as 204)

        Raises:
            APIError: If the request fails
        """
        url = f"{self.BASE_URL}{endpoint}"

        async with httpx.AsyncClient() as client:
            try:
                response = await client.request(
                    method=method,
                    url=url,
                    headers=self._get_headers(),
                    params=params,
                    json=json,
                    timeout=REQUEST_TIMEOUT,
                )
            except httpx.RequestError as e:
                logger.error(f"Network error calling {self.service_name} API: {e}")
                raise APIError(f"Network error: {e}") from e

        if response.status_code == 401:
            logger.error(f"{self.service_name} API: Unauthorized (token may be expired)")
            raise APIError(ERROR_UNAUTHORIZED, status_code=401, response=response.text)

        if response.status_code == 403:
            logger.error(f"{self.service_name} API: Forbidden")
            error_text = response.text.lower()
            if "scope" in error_text or "insufficient" in error_text:
                raise ScopeNotGrantedError(ERROR_MISSING_SCOPE, status_code=403, response=response.text)
            raise APIError(ERROR_FORBIDDEN, status_code=403, response=response.text)

        if response.status_code == 404:
            logger.error(f"{self.service_name} API: Not found ({endpoint})")
            raise APIError(ERROR_NOT_FOUND, status_code=404, response=response.text)

        if not response.is_success:
            error_detail = response.text
            logger.error(f"{self.service_name} API error: {response.status_code} - {error_detail}")
            raise APIError(
                f"API request failed: {error_detail}",
                status_code=response.status_code,
                response=error_detail,
            )

        if not response.content:
            return {}
        return response.json()

    async def validate_access(self) -> bool:
        """
        Verify the token works with a lightweight call.

        Subclasses define _probe(); any APIError means "no access".
        """
        try:
            await self._probe()
            return True
        except APIError as e:
            logger.warning(f"{self.service_name} access check failed: {e}")
            return False

    async def _probe(self) -> None:
        raise NotImplementedError
