"""
Discovery Service - finds every Google spreadsheet the connection can see
and stores it with its permission snapshot.

Flow:
=====
1. Page through Drive files.list (spreadsheets only, all drives, 1000 per
   page) strictly in order until there is no nextPageToken
2. Normalize each file (defaults for missing name/owner/url/dates, and
   for missing permission fields)
3. Persist sequentially: upsert the sheet, upsert each of its permissions,
   drop permissions that disappeared. Every item is its own commit, so a
   failure on item N leaves items 1..N-1 stored
4. (discover_and_analyze) run the risk-scoring pass

Usage:
======
    from app.services.discovery_service import discovery_service

    drive = await discovery_service.get_drive_client(user.id, db)
    result = await discovery_service.discover_sheets(user.id, drive, db)
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from app.environments.base import EnvironmentError
from app.environments.google.auth import DRIVE_SCOPES
from app.environments.google.drive import (
    DriveFile,
    DrivePermission,
    GoogleDriveClient,
    SPREADSHEET_QUERY,
)
from app.environments.google.service_account import ServiceAccountTokenProvider
from app.models.oauth_credential import PROVIDER_GOOGLE_DRIVE
from app.repositories.oauth_credential import OAuthCredentialRepository
from app.repositories.permission import PermissionRepository
from app.repositories.sheet import SheetRepository
from app.services.credential_service import credential_service
from app.services.errors import DiscoveryError
from app.services.oauth_token_service import get_drive_oauth_service
from app.services.risk_scoring import RiskAnalysisResult, risk_scoring_service


logger = logging.getLogger("shenv.services.discovery")


DEFAULT_SHEET_NAME = "Untitled"
DEFAULT_OWNER_EMAIL = "unknown@example.com"
SPREADSHEET_URL_TEMPLATE = "https://docs.google.com/spreadsheets/d/{id}"

DEFAULT_PERMISSION_ROLE = "reader"
DEFAULT_PERMISSION_TYPE = "user"


# ---------------------------------------------------------------------------
# RESULT DATACLASSES
# ---------------------------------------------------------------------------

@dataclass
class DiscoveredPermission:
    external_permission_id: str
    email: Optional[str]
    role: str
    type: str
    display_name: Optional[str] = None


@dataclass
class DiscoveredSheet:
    external_id: str
    name: str
    owner_email: str
    url: str
    created_at: datetime
    last_modified_at: datetime
    permissions: List[DiscoveredPermission] = field(default_factory=list)

    @property
    def permission_count(self) -> int:
        return len(self.permissions)


@dataclass
class DiscoveryResult:
    discovered: int = 0
    stored: int = 0


# ---------------------------------------------------------------------------
# NORMALIZATION
# ---------------------------------------------------------------------------

def permission_key(permission: DrivePermission, position: int) -> str:
    """
    Natural key of a grant. Drive normally returns an id; a grant without one
    is keyed by type and grantee so distinct id-less grants stay distinct.
    """
    if permission.id:
        return permission.id
    grantee = permission.email_address or permission.domain or str(position)
    return f"{permission.type or DEFAULT_PERMISSION_TYPE}:{grantee.lower()}"


def normalize_file(file: DriveFile, now: Optional[datetime] = None) -> DiscoveredSheet:
    """Turn a Drive file into a DiscoveredSheet, filling in the defaults."""
    now = now or datetime.now(timezone.utc)

    owner_email = None
    if file.owners:
        owner_email = file.owners[0].email_address

    permissions = [
        DiscoveredPermission(
            external_permission_id=permission_key(p, position),
            email=p.email_address or None,
            role=p.role or DEFAULT_PERMISSION_ROLE,
            type=p.type or DEFAULT_PERMISSION_TYPE,
            display_name=p.display_name or None,
        )
        for position, p in enumerate(file.permissions)
    ]

    return DiscoveredSheet(
        external_id=file.id,
        name=file.name or DEFAULT_SHEET_NAME,
        owner_email=owner_email or DEFAULT_OWNER_EMAIL,
        url=file.web_view_link or SPREADSHEET_URL_TEMPLATE.format(id=file.id),
        created_at=file.created_time or now,
        last_modified_at=file.modified_time or now,
        permissions=permissions,
    )


# ---------------------------------------------------------------------------
# SERVICE
# ---------------------------------------------------------------------------

class DiscoveryService:

    async def get_drive_client(
        self,
        user_id: int,
        db: Session,
        subject: Optional[str] = None,
    ) -> Optional[GoogleDriveClient]:
        """
        Drive client for the user's Google connection.

        A stored service account wins (optionally impersonating `subject`);
        otherwise the Drive OAuth token is used. None when neither exists.
        """
        service_account_info = credential_service.get_service_account(user_id, db)
        if service_account_info:
            try:
                provider = ServiceAccountTokenProvider(
                    service_account_info, scopes=DRIVE_SCOPES, subject=subject
                )
                token = await provider.get_access_token()
            except EnvironmentError as exc:
                raise DiscoveryError(f"Failed to discover sheets: {exc}") from exc
            return GoogleDriveClient(access_token=token)

        if OAuthCredentialRepository(db).has_tokens(user_id, PROVIDER_GOOGLE_DRIVE):
            token = await credential_service.get_valid_access_token(
                user_id, PROVIDER_GOOGLE_DRIVE, get_drive_oauth_service(), db
            )
            return GoogleDriveClient(access_token=token)

        return None

    async def fetch_sheets(self, drive_client: GoogleDriveClient) -> List[DiscoveredSheet]:
        """
        Every spreadsheet visible to the client, in Drive's page order.

        Raises:
            DiscoveryError: If any page request fails
        """
        sheets: List[DiscoveredSheet] = []
        now = datetime.now(timezone.utc)
        pages = 0

        try:
            async for page in drive_client.iter_file_pages(SPREADSHEET_QUERY):
                pages += 1
                sheets.extend(normalize_file(f, now) for f in page.files)
        except EnvironmentError as exc:
            logger.error(f"Drive listing failed after {pages} pages: {exc}")
            raise DiscoveryError(f"Failed to discover sheets: {exc}") from exc

        logger.info(f"Fetched {len(sheets)} spreadsheets in {pages} pages")
        return sheets

    def store_sheets(self, user_id: int, sheets: List[DiscoveredSheet], db: Session) -> int:
        """
        Persist sheets and their permissions in order, one commit per item.

        Returns:
            Number of sheets stored

        Raises:
            DiscoveryError: On the first failure; earlier items stay committed
        """
        sheet_repo = SheetRepository(db)
        permission_repo = PermissionRepository(db)
        stored = 0

        try:
            for discovered in sheets:
                sheet = sheet_repo.upsert(
                    user_id,
                    {
                        "external_id": discovered.external_id,
                        "name": discovered.name,
                        "owner_email": discovered.owner_email,
                        "url": discovered.url,
                        "created_at": discovered.created_at,
                        "last_modified_at": discovered.last_modified_at,
                        "permission_count": discovered.permission_count,
                    },
                )

                for permission in discovered.permissions:
                    permission_repo.upsert(
                        sheet.id,
                        {
                            "external_permission_id": permission.external_permission_id,
                            "email": permission.email,
                            "role": permission.role,
                            "type": permission.type,
                            "display_name": permission.display_name,
                        },
                    )

                permission_repo.delete_missing(
                    sheet.id, {p.external_permission_id for p in discovered.permissions}
                )
                stored += 1
        except Exception as exc:
            logger.error(f"Storing sheets failed after {stored} of {len(sheets)}: {exc}")
            raise DiscoveryError(f"Failed to discover sheets: {exc}") from exc

        return stored

    async def discover_sheets(
        self,
        user_id: int,
        drive_client: GoogleDriveClient,
        db: Session,
    ) -> DiscoveryResult:
        """Fetch every spreadsheet and store it. See module docstring."""
        logger.info(f"Starting sheet discovery for user {user_id}")

        sheets = await self.fetch_sheets(drive_client)
        stored = self.store_sheets(user_id, sheets, db)

        result = DiscoveryResult(discovered=len(sheets), stored=stored)
        logger.info(
            f"Sheet discovery complete for user {user_id}",
            extra={"discovered": result.discovered, "stored": result.stored},
        )
        return result

    async def discover_and_analyze(
        self,
        user_id: int,
        drive_client: GoogleDriveClient,
        db: Session,
    ) -> Tuple[DiscoveryResult, RiskAnalysisResult]:
        """Discovery followed by a full risk-scoring pass."""
        result = await self.discover_sheets(user_id, drive_client, db)
        analysis = risk_scoring_service.analyze_sheet_risks(user_id, db)
        return result, analysis


discovery_service = DiscoveryService()
