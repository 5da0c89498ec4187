"""
Governance router - sheets that need attention (paid tiers).

A finding is a sheet that is high-risk (score >= 70), orphaned, or
inactive, listed with the risk factors behind its score. Findings are
read-only; acting on them happens in Google Drive.
"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.deps import require_paid_tier
from app.models.user import User
from app.repositories.permission import PermissionRepository
from app.repositories.sheet import HIGH_RISK_THRESHOLD, SheetRepository
from app.repositories.workspace_user import WorkspaceUserRepository
from app.schemas.assets import Finding, SheetOut
from app.services.risk_scoring import compute_risk

logger = logging.getLogger("shenv.routers.governance")

router = APIRouter(prefix="/governance", tags=["governance"])


SEVERITY_HIGH = "high"
SEVERITY_MEDIUM = "medium"
SEVERITY_LOW = "low"


def severity_for(score: int) -> str:
    if score >= HIGH_RISK_THRESHOLD:
        return SEVERITY_HIGH
    if score >= 40:
        return SEVERITY_MEDIUM
    return SEVERITY_LOW


@router.get("/findings")
def list_findings(
    limit: int = Query(100, ge=1, le=500),
    current_user: User = Depends(require_paid_tier()),
    db: Session = Depends(get_db),
):
    """
    High-risk, orphaned and inactive sheets, riskiest first.

    Factors are recomputed from the stored permissions and roster, so they
    match what the last risk pass saw unless discovery ran since.
    """
    sheets, _ = SheetRepository(db).find_all_by_user(
        current_user.id, sort_by="risk_score", sort_order="desc"
    )
    roster = WorkspaceUserRepository(db).emails_for_user(current_user.id)
    permissions = PermissionRepository(db)

    findings = []
    for sheet in sheets:
        if not (sheet.risk_score >= HIGH_RISK_THRESHOLD or sheet.is_orphaned or sheet.is_inactive):
            continue

        assessment = compute_risk(
            sheet.owner_email,
            sheet.last_modified_at,
            permissions.find_all_by_sheet(sheet.id),
            roster,
        )
        findings.append(
            Finding(
                sheet=SheetOut.model_validate(sheet),
                severity=severity_for(sheet.risk_score),
                risk_factors=assessment.factor_names,
            )
        )
        if len(findings) >= limit:
            break

    counts = {
        "highRisk": sum(1 for f in findings if f.sheet.risk_score >= HIGH_RISK_THRESHOLD),
        "orphaned": sum(1 for f in findings if f.sheet.is_orphaned),
        "inactive": sum(1 for f in findings if f.sheet.is_inactive),
    }

    return {
        "success": True,
        "data": {"findings": findings, "total": len(findings), "counts": counts},
    }
