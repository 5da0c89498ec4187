"""
Reports router - account-wide summary (paid tiers).
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.deps import require_paid_tier
from app.models.user import User
from app.repositories.email_sender import EmailSenderRepository
from app.repositories.sheet import SheetRepository
from app.repositories.workspace_user import WorkspaceUserRepository

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/summary")
def report_summary(
    current_user: User = Depends(require_paid_tier()),
    db: Session = Depends(get_db),
):
    sheets = SheetRepository(db)
    sheet_stats = sheets.get_stats(current_user.id)
    sender_stats = EmailSenderRepository(db).get_stats(current_user.id)

    return {
        "success": True,
        "data": {
            "sheets": {
                "total": sheet_stats["total_sheets"],
                "orphaned": sheet_stats["orphaned_sheets"],
                "inactive": sheet_stats["inactive_sheets"],
                "highRisk": sheet_stats["high_risk_sheets"],
                "averageRiskScore": sheet_stats["average_risk_score"],
            },
            "riskDistribution": sheets.get_risk_distribution(current_user.id),
            "workspaceUsers": WorkspaceUserRepository(db).count_by_user(current_user.id),
            "senders": {
                "total": sender_stats["total_senders"],
                "totalEmails": sender_stats["total_emails"],
                "unverified": sender_stats["unverified_senders"],
                "withUnsubscribe": sender_stats["with_unsubscribe"],
            },
        },
    }
