"""
Assets router - spreadsheet discovery, risk analysis and browsing.

Endpoints:
    POST /api/assets/discover            Drive discovery + risk pass
    POST /api/assets/analyze             risk pass only
    POST /api/assets/workspace/discover  roster sync (business tier)
    GET  /api/assets                     filtered, sorted, paginated list
    GET  /api/assets/stats/summary       counts and average risk
    GET  /api/assets/{external_id}       one sheet with permissions and risk factors
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.errors import ApiError
from app.db.session import get_db
from app.deps import get_current_user, require_business_tier
from app.models.user import User
from app.repositories.sheet import SheetRepository
from app.schemas.assets import (
    PermissionOut,
    SheetDetail,
    SheetOut,
    WorkspaceDiscoverRequest,
)
from app.services.credential_service import credential_service
from app.services.discovery_service import discovery_service
from app.services.risk_scoring import RiskAnalysisResult, risk_scoring_service
from app.services.workspace_service import workspace_service

logger = logging.getLogger("shenv.routers.assets")

router = APIRouter(prefix="/api/assets", tags=["assets"])


# Client sort keys (camelCase) → repository sort columns
SORT_FIELDS = {
    "name": "name",
    "ownerEmail": "owner_email",
    "createdAt": "created_at",
    "lastModifiedAt": "last_modified_at",
    "riskScore": "risk_score",
    "permissionCount": "permission_count",
}

NO_CREDENTIALS_MESSAGE = (
    "No Google credentials found. Upload a service account key or connect Google Drive."
)


def _analysis_data(result: RiskAnalysisResult) -> dict:
    return {
        "analyzed": result.analyzed,
        "highRisk": result.high_risk,
        "orphaned": result.orphaned,
        "inactive": result.inactive,
    }


# ---------------------------------------------------------------------------
# DISCOVERY AND ANALYSIS
# ---------------------------------------------------------------------------
@router.post("/discover")
async def discover_assets(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Discover every spreadsheet the user's Google connection can see, then
    recompute risk scores.

    A stored service account is preferred; otherwise the Drive OAuth token.

    Raises:
        400 NO_CREDENTIALS: Neither is available
        502 DISCOVERY_FAILED: Drive or storage failure (partial results stay stored)
    """
    drive_client = await discovery_service.get_drive_client(current_user.id, db)
    if drive_client is None:
        raise ApiError(status.HTTP_400_BAD_REQUEST, NO_CREDENTIALS_MESSAGE, code="NO_CREDENTIALS")

    result, analysis = await discovery_service.discover_and_analyze(
        current_user.id, drive_client, db
    )

    return {
        "success": True,
        "data": {
            "discovered": result.discovered,
            "stored": result.stored,
            "analysis": _analysis_data(analysis),
        },
        "message": f"Discovered {result.discovered} sheets, stored {result.stored}",
    }


@router.post("/analyze")
def analyze_assets(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Recompute risk for the stored sheets without calling Google."""
    analysis = risk_scoring_service.analyze_sheet_risks(current_user.id, db)
    return {"success": True, "data": _analysis_data(analysis)}


@router.post("/workspace/discover")
async def discover_workspace(
    payload: WorkspaceDiscoverRequest,
    current_user: User = Depends(require_business_tier()),
    db: Session = Depends(get_db),
):
    """
    Sync the workspace roster through the Admin SDK, then rescore sheets
    (the roster decides who is external and which sheets are orphaned).

    Raises:
        400 NO_CREDENTIALS: No service account stored
        502 DISCOVERY_FAILED: Directory failure, including missing delegation
    """
    service_account_info = credential_service.get_service_account(current_user.id, db)
    if service_account_info is None:
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            "Workspace discovery requires a Google Workspace service account",
            code="NO_CREDENTIALS",
        )

    sync = await workspace_service.discover_with_service_account(
        current_user.id, service_account_info, payload.admin_email, db
    )
    analysis = risk_scoring_service.analyze_sheet_risks(current_user.id, db)

    return {
        "success": True,
        "data": {
            "discovered": sync.discovered,
            "stored": sync.stored,
            "analysis": _analysis_data(analysis),
        },
        "message": f"Synced {sync.stored} workspace users",
    }


# ---------------------------------------------------------------------------
# BROWSING
# ---------------------------------------------------------------------------
@router.get("")
@router.get("/", include_in_schema=False)
def list_assets(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = Query(None),
    is_orphaned: Optional[bool] = Query(None, alias="isOrphaned"),
    is_inactive: Optional[bool] = Query(None, alias="isInactive"),
    min_risk: Optional[int] = Query(None, alias="minRisk", ge=0, le=100),
    sort_by: str = Query("lastModifiedAt", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder", pattern="^(asc|desc)$"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Page through the user's sheets.

    Example: GET /api/assets?page=2&limit=20&minRisk=70&sortBy=riskScore&sortOrder=desc
    """
    if sort_by not in SORT_FIELDS:
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            f"Invalid sortBy: {sort_by}",
            code="INVALID_SORT",
            extra={"allowed": list(SORT_FIELDS)},
        )

    sheets, total = SheetRepository(db).find_all_by_user(
        current_user.id,
        search=search,
        is_orphaned=is_orphaned,
        is_inactive=is_inactive,
        min_risk=min_risk,
        sort_by=SORT_FIELDS[sort_by],
        sort_order=sort_order,
        limit=limit,
        offset=(page - 1) * limit,
    )

    return {
        "success": True,
        "data": {
            "sheets": [SheetOut.model_validate(s) for s in sheets],
            "total": total,
            "page": page,
            "limit": limit,
            "hasMore": total > page * limit,
        },
    }


# Declared before /{external_id} so "stats" is not taken for a file id
@router.get("/stats/summary")
def assets_summary(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    stats = SheetRepository(db).get_stats(current_user.id)
    return {
        "success": True,
        "data": {
            "totalSheets": stats["total_sheets"],
            "orphanedSheets": stats["orphaned_sheets"],
            "inactiveSheets": stats["inactive_sheets"],
            "highRiskSheets": stats["high_risk_sheets"],
            "averageRiskScore": stats["average_risk_score"],
        },
    }


@router.get("/{external_id}")
def get_asset(
    external_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """One sheet by Drive file id, with its permissions and current risk factors."""
    sheet = SheetRepository(db).find_by_external_id(current_user.id, external_id)
    if sheet is None:
        raise ApiError(status.HTTP_404_NOT_FOUND, "Sheet not found", code="NOT_FOUND")

    assessment = risk_scoring_service.assess_sheet(sheet.id, current_user.id, db)
    detail = SheetDetail(
        **SheetOut.model_validate(sheet).model_dump(),
        permissions=[PermissionOut.model_validate(p) for p in sheet.permissions],
        risk_factors=assessment.factor_names,
    )
    return {"success": True, "data": {"sheet": detail}}
