"""
Asset schemas - discovered spreadsheets, their permissions and risk data.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import EmailStr

from app.schemas.common import CamelModel


class WorkspaceDiscoverRequest(CamelModel):
    """
    Schema for POST /api/assets/workspace/discover.

    {"adminEmail": "admin@acme.com"}  - the super admin the service account
    impersonates through domain-wide delegation.
    """
    admin_email: EmailStr


class PermissionOut(CamelModel):
    id: int
    external_permission_id: str
    email: Optional[str] = None
    role: str
    type: str
    display_name: Optional[str] = None
    snapshot_date: Optional[datetime] = None


class SheetOut(CamelModel):
    """
    One spreadsheet as listed in the assets table.

    Example:
    {
        "id": 7,
        "externalId": "1AbC...",
        "name": "Payroll 2025",
        "ownerEmail": "ana@acme.com",
        "riskScore": 65,
        "isOrphaned": false,
        ...
    }
    """
    id: int
    external_id: str
    name: str
    owner_email: str
    url: str
    created_at: datetime
    last_modified_at: datetime
    permission_count: int
    is_orphaned: bool
    is_inactive: bool
    risk_score: int
    last_synced_at: Optional[datetime] = None


class SheetDetail(SheetOut):
    permissions: List[PermissionOut] = []
    risk_factors: List[str] = []


class Finding(CamelModel):
    """A sheet flagged by governance, with the factors behind its score."""
    sheet: SheetOut
    severity: str
    risk_factors: List[str]
