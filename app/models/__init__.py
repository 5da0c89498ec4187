"""
ORM models. Importing this package registers every table on Base.metadata.
"""

from app.models.user import User
from app.models.platform_credential import PlatformCredential
from app.models.oauth_credential import OAuthCredential
from app.models.workspace_user import WorkspaceUser
from app.models.sheet import Sheet
from app.models.permission import Permission
from app.models.email_sender import EmailSender

__all__ = [
    "User",
    "PlatformCredential",
    "OAuthCredential",
    "WorkspaceUser",
    "Sheet",
    "Permission",
    "EmailSender",
]
