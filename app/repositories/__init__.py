"""
Repositories - one class per table, wrapping a SQLAlchemy Session.

Every write commits immediately (one commit per item). On a database error
the session is rolled back, the error is logged, and the original
SQLAlchemyError propagates to the caller.
"""

from app.repositories.user import UserRepository
from app.repositories.platform_credential import PlatformCredentialRepository
from app.repositories.oauth_credential import OAuthCredentialRepository
from app.repositories.workspace_user import WorkspaceUserRepository
from app.repositories.sheet import SheetRepository
from app.repositories.permission import PermissionRepository
from app.repositories.email_sender import EmailSenderRepository

__all__ = [
    "UserRepository",
    "PlatformCredentialRepository",
    "OAuthCredentialRepository",
    "WorkspaceUserRepository",
    "SheetRepository",
    "PermissionRepository",
    "EmailSenderRepository",
]
