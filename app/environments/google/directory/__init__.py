"""Admin SDK Directory - workspace roster."""

from app.environments.google.directory.client import GoogleDirectoryClient, MAX_USERS_PER_PAGE
from app.environments.google.directory.schemas import DirectoryUser, DirectoryUserList

__all__ = [
    "GoogleDirectoryClient",
    "MAX_USERS_PER_PAGE",
    "DirectoryUser",
    "DirectoryUserList",
]
