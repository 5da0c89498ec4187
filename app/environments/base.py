"""
Base classes and interfaces for platform integrations.

Every external platform module (currently only Google) builds on these:

- EnvironmentProvider: OAuth provider contract (authorization URL, code
  exchange, refresh, user info, revoke)
- EnvironmentService: one API surface of a provider (Drive, Gmail,
  Directory) used with an access token
- A shared exception hierarchy so services can tell "reconnect needed"
  apart from "the API said no"
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, List, Dict, Any


# ---------------------------------------------------------------------------
# CUSTOM EXCEPTIONS
# ---------------------------------------------------------------------------


class EnvironmentError(Exception):
    """Base exception for all platform integration errors."""
    pass


class AuthenticationError(EnvironmentError):
    """Raised when authentication with a provider fails."""
    pass


class TokenExpiredError(EnvironmentError):
    """Raised when an OAuth token has expired and refresh failed."""
    pass


class APIError(EnvironmentError):
    """Raised when an API call to the provider fails."""

    def __init__(self, message: str, status_code: Optional[int] = None, response: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.response = response


class ScopeNotGrantedError(APIError):
    """Raised when the token lacks a scope the API call needs (403)."""
    pass


# ---------------------------------------------------------------------------
# DATA STRUCTURES
# ---------------------------------------------------------------------------


@dataclass
class OAuthTokens:
    """
    Token data returned by an OAuth provider.

    Plain structure handed back to callers; persisting (and encrypting)
    it is the caller's job.
    """
    access_token: str
    token_type: str = "Bearer"
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = None
    scopes: Optional[List[str]] = None
    extra_data: Optional[Dict[str, Any]] = None

    @property
    def scope(self) -> Optional[str]:
        """Scopes as the space-separated string Google uses."""
        return " ".join(self.scopes) if self.scopes else None


@dataclass
class UserInfo:
    """Basic profile of the account that granted access."""
    provider_user_id: str  # Unique ID from the provider (Google's 'sub')
    email: Optional[str] = None
    name: Optional[str] = None
    picture_url: Optional[str] = None
    extra_data: Optional[Dict[str, Any]] = None


# ---------------------------------------------------------------------------
# ABSTRACT BASE CLASSES
# ---------------------------------------------------------------------------


class EnvironmentProvider(ABC):
    """Abstract base class for OAuth providers."""

    # Unique identifier for this provider (e.g., "google")
    provider_name: str = ""

    @abstractmethod
    def get_authorization_url(
        self,
        scopes: List[str],
        state: str,
        redirect_uri: Optional[str] = None,
    ) -> str:
        """Build the consent-screen URL the user is redirected to."""

    @abstractmethod
    async def exchange_code_for_tokens(
        self,
        code: str,
        redirect_uri: Optional[str] = None,
    ) -> OAuthTokens:
        """
        Exchange authorization code for access/refresh tokens.

        Raises:
            AuthenticationError: If code exchange fails
        """

    @abstractmethod
    async def refresh_access_token(self, refresh_token: str) -> OAuthTokens:
        """
        Use refresh token to get a new access token.

        Raises:
            TokenExpiredError: If refresh token is invalid/expired
        """

    @abstractmethod
    async def get_user_info(self, access_token: str) -> UserInfo:
        """Get the profile of the account behind access_token."""

    @abstractmethod
    async def revoke_token(self, token: str) -> bool:
        """Revoke an access or refresh token. Returns True on success."""


class EnvironmentService(ABC):
    """
    Abstract base class for API services within a provider.

    Services are constructed per call with an access token; they hold no
    state beyond it.
    """

    # Unique identifier for this service within the provider
    service_name: str = ""

    # OAuth scopes required for this service to function
    required_scopes: List[str] = []

    @abstractmethod
    async def validate_access(self) -> bool:
        """True if the access token can reach this service."""
