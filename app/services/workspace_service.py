"""
Workspace Service - syncs the Google Workspace roster.

The roster (workspace_users) is what risk scoring compares sharing against:
an email that is not on it is "external", an owner that is not on it makes
the sheet orphaned.

The Directory API only answers service-account tokens that impersonate an
admin through domain-wide delegation, so discovery needs both the stored
service-account key and the admin's email.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from app.environments.base import APIError, EnvironmentError
from app.environments.google.auth import DIRECTORY_SCOPES
from app.environments.google.directory import DirectoryUser, GoogleDirectoryClient
from app.environments.google.service_account import ServiceAccountTokenProvider
from app.models.platform_credential import PLATFORM_GOOGLE_WORKSPACE
from app.repositories.workspace_user import WorkspaceUserRepository
from app.services.errors import DiscoveryError


logger = logging.getLogger("shenv.services.workspace")

DELEGATION_HELP = (
    "Failed to discover workspace users: access denied by the Admin SDK. "
    "Enable domain-wide delegation for the service account, grant it the "
    "admin.directory.user.readonly scope, and use a super admin email."
)


@dataclass
class WorkspaceSyncResult:
    discovered: int = 0
    stored: int = 0


class WorkspaceService:

    async def discover_workspace_users(
        self, directory_client: GoogleDirectoryClient
    ) -> List[DirectoryUser]:
        """
        Every user of the domain.

        Raises:
            DiscoveryError: 403 gets the delegation explanation, anything
                else is wrapped as is
        """
        try:
            return await directory_client.list_all_users()
        except APIError as exc:
            if exc.status_code == 403:
                logger.warning(f"Directory access denied: {exc}")
                raise DiscoveryError(DELEGATION_HELP) from exc
            raise DiscoveryError(f"Failed to discover workspace users: {exc}") from exc
        except EnvironmentError as exc:
            raise DiscoveryError(f"Failed to discover workspace users: {exc}") from exc

    def sync_workspace_users(
        self,
        user_id: int,
        users: List[DirectoryUser],
        db: Session,
    ) -> int:
        """Upsert the roster, one commit per member. Returns the number stored."""
        members: List[Dict[str, Any]] = [
            {
                "platform": PLATFORM_GOOGLE_WORKSPACE,
                "email": u.primary_email,
                "full_name": u.full_name,
                "is_admin": u.is_admin,
                "is_suspended": u.suspended,
                "created_at": u.creation_time,
                "last_login_at": u.last_login_time,
            }
            for u in users
        ]

        try:
            stored = WorkspaceUserRepository(db).bulk_upsert(user_id, members)
        except Exception as exc:
            raise DiscoveryError(f"Failed to store workspace users: {exc}") from exc

        logger.info(f"Synced {len(stored)} workspace users for user {user_id}")
        return len(stored)

    async def discover_with_service_account(
        self,
        user_id: int,
        service_account_info: Dict[str, Any],
        admin_email: str,
        db: Session,
    ) -> WorkspaceSyncResult:
        """Impersonate `admin_email`, list the domain and store the roster."""
        try:
            provider = ServiceAccountTokenProvider(
                service_account_info, scopes=DIRECTORY_SCOPES, subject=admin_email
            )
            token = await provider.get_access_token()
        except EnvironmentError as exc:
            raise DiscoveryError(f"Failed to discover workspace users: {exc}") from exc

        users = await self.discover_workspace_users(GoogleDirectoryClient(access_token=token))
        stored = self.sync_workspace_users(user_id, users, db)
        return WorkspaceSyncResult(discovered=len(users), stored=stored)


workspace_service = WorkspaceService()
