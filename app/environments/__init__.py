"""
Environments Module - external platform integrations.

environments/
├── base.py               # Provider/service contracts and exceptions
└── google/               # Google Workspace / Drive / Gmail
    ├── auth/             # OAuth 2.0 client and scopes
    ├── drive/            # Drive v3 (spreadsheet discovery)
    ├── gmail/            # Gmail v1 (sender analysis, cleanup)
    ├── directory/        # Admin SDK Directory (workspace roster)
    └── service_account.py  # Service-account access tokens

Only Google is implemented. Other platforms (Microsoft 365, Zoho, Dropbox,
Box) can be connected and their credentials stored, but have no adapter.
"""

from app.environments.base import (
    EnvironmentProvider,
    EnvironmentService,
    EnvironmentError,
    AuthenticationError,
    TokenExpiredError,
    ScopeNotGrantedError,
    APIError,
    OAuthTokens,
    UserInfo,
)

__all__ = [
    "EnvironmentProvider",
    "EnvironmentService",
    "EnvironmentError",
    "AuthenticationError",
    "TokenExpiredError",
    "ScopeNotGrantedError",
    "APIError",
    "OAuthTokens",
    "UserInfo",
]
