"""
Risk Scoring Service - assigns each discovered sheet a 0-100 exposure score.

Scoring model:
==============
Each factor is added at most once:

    public_link        any "anyone" permission                       +40
    domain_wide        any "domain" permission                       +25
    external_users     a "user" grant to an email outside the roster +20
    external_editors   ...with role writer or owner                  +15
    orphaned_owner     owner email not in the roster                 +20  (is_orphaned)
    stale              not modified for 6 calendar months            +10  (is_inactive)
    broad_sharing      > 50 permissions: +10, else > 20: +5

score = min(sum, 100). Roster membership is case-insensitive.

The score is recomputed from scratch on every pass from the stored
permission snapshot and the current roster; nothing is adjusted
incrementally, so flags can be cleared as well as set.

Usage:
======
    from app.services.risk_scoring import risk_scoring_service

    result = risk_scoring_service.analyze_sheet_risks(user.id, db)
"""

import calendar
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Protocol, Set

from sqlalchemy.orm import Session

from app.models.permission import (
    EDITOR_ROLES,
    PERMISSION_TYPE_ANYONE,
    PERMISSION_TYPE_DOMAIN,
    PERMISSION_TYPE_USER,
)
from app.repositories.permission import PermissionRepository
from app.repositories.sheet import HIGH_RISK_THRESHOLD, SheetRepository
from app.repositories.workspace_user import WorkspaceUserRepository
from app.services.errors import RiskScoringError


logger = logging.getLogger("shenv.services.risk_scoring")


# ---------------------------------------------------------------------------
# WEIGHTS
# ---------------------------------------------------------------------------
PUBLIC_LINK_POINTS = 40
DOMAIN_WIDE_POINTS = 25
EXTERNAL_USERS_POINTS = 20
EXTERNAL_EDITORS_POINTS = 15
ORPHANED_OWNER_POINTS = 20
STALE_POINTS = 10
BROAD_SHARING_HIGH_POINTS = 10
BROAD_SHARING_LOW_POINTS = 5

BROAD_SHARING_HIGH_THRESHOLD = 50
BROAD_SHARING_LOW_THRESHOLD = 20

STALE_AFTER_MONTHS = 6

MAX_SCORE = 100


class PermissionLike(Protocol):
    type: str
    role: str
    email: Optional[str]


@dataclass
class RiskFactor:
    name: str
    points: int


@dataclass
class RiskAssessment:
    """Outcome of scoring one sheet."""
    score: int
    is_orphaned: bool
    is_inactive: bool
    factors: List[RiskFactor] = field(default_factory=list)

    @property
    def factor_names(self) -> List[str]:
        return [f.name for f in self.factors]


@dataclass
class RiskAnalysisResult:
    """Summary of one scoring pass over a user's sheets."""
    analyzed: int = 0
    high_risk: int = 0
    orphaned: int = 0
    inactive: int = 0


# ---------------------------------------------------------------------------
# PURE SCORING
# ---------------------------------------------------------------------------

def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def subtract_months(value: datetime, months: int) -> datetime:
    """Same wall-clock time `months` calendar months earlier, clamping the day."""
    month_index = value.year * 12 + (value.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def compute_risk(
    owner_email: str,
    last_modified_at: Optional[datetime],
    permissions: Iterable[PermissionLike],
    roster: Set[str],
    now: Optional[datetime] = None,
) -> RiskAssessment:
    """
    Score one sheet.

    Args:
        owner_email: The sheet owner's email
        last_modified_at: Last modification time (None is treated as not stale)
        permissions: The sheet's current permissions
        roster: Lower-cased emails of the workspace members
        now: Reference time (defaults to the current UTC time)

    Returns:
        RiskAssessment with the clamped score, both flags and the factors hit
    """
    now = _as_utc(now or datetime.now(timezone.utc))
    roster = {email.lower() for email in roster}
    permissions = list(permissions)

    factors: List[RiskFactor] = []

    if any(p.type == PERMISSION_TYPE_ANYONE for p in permissions):
        factors.append(RiskFactor("public_link", PUBLIC_LINK_POINTS))

    if any(p.type == PERMISSION_TYPE_DOMAIN for p in permissions):
        factors.append(RiskFactor("domain_wide", DOMAIN_WIDE_POINTS))

    external = [
        p for p in permissions
        if p.type == PERMISSION_TYPE_USER and p.email and p.email.lower() not in roster
    ]
    if external:
        factors.append(RiskFactor("external_users", EXTERNAL_USERS_POINTS))
        if any(p.role in EDITOR_ROLES for p in external):
            factors.append(RiskFactor("external_editors", EXTERNAL_EDITORS_POINTS))

    is_orphaned = (owner_email or "").lower() not in roster
    if is_orphaned:
        factors.append(RiskFactor("orphaned_owner", ORPHANED_OWNER_POINTS))

    is_inactive = False
    if last_modified_at is not None:
        is_inactive = _as_utc(last_modified_at) < subtract_months(now, STALE_AFTER_MONTHS)
    if is_inactive:
        factors.append(RiskFactor("stale", STALE_POINTS))

    if len(permissions) > BROAD_SHARING_HIGH_THRESHOLD:
        factors.append(RiskFactor("broad_sharing", BROAD_SHARING_HIGH_POINTS))
    elif len(permissions) > BROAD_SHARING_LOW_THRESHOLD:
        factors.append(RiskFactor("broad_sharing", BROAD_SHARING_LOW_POINTS))

    score = min(sum(f.points for f in factors), MAX_SCORE)

    return RiskAssessment(
        score=score,
        is_orphaned=is_orphaned,
        is_inactive=is_inactive,
        factors=factors,
    )


# ---------------------------------------------------------------------------
# SERVICE
# ---------------------------------------------------------------------------

class RiskScoringService:
    """Runs compute_risk over a user's stored sheets and persists the results."""

    def assess_sheet(self, sheet_id: int, user_id: int, db: Session) -> RiskAssessment:
        """Score one stored sheet without persisting anything."""
        sheet = SheetRepository(db).find_by_id(sheet_id)
        if sheet is None or sheet.user_id != user_id:
            raise RiskScoringError(f"Sheet {sheet_id} not found")

        roster = WorkspaceUserRepository(db).emails_for_user(user_id)
        permissions = PermissionRepository(db).find_all_by_sheet(sheet.id)
        return compute_risk(sheet.owner_email, sheet.last_modified_at, permissions, roster)

    def analyze_sheet_risks(
        self,
        user_id: int,
        db: Session,
        now: Optional[datetime] = None,
    ) -> RiskAnalysisResult:
        """
        Recompute and store score, is_orphaned and is_inactive for every
        sheet of the user.

        The roster is loaded once per pass. Sheets are processed one at a
        time, each update committed on its own.

        Raises:
            RiskScoringError: On any failure; sheets already updated stay updated
        """
        now = now or datetime.now(timezone.utc)
        sheet_repo = SheetRepository(db)
        permission_repo = PermissionRepository(db)
        result = RiskAnalysisResult()

        logger.info(f"Starting risk analysis for user {user_id}")

        try:
            roster = WorkspaceUserRepository(db).emails_for_user(user_id)
            sheets, _ = sheet_repo.find_all_by_user(user_id)

            for sheet in sheets:
                permissions = permission_repo.find_all_by_sheet(sheet.id)
                assessment = compute_risk(
                    sheet.owner_email,
                    sheet.last_modified_at,
                    permissions,
                    roster,
                    now=now,
                )
                sheet_repo.update_risk(
                    sheet.id,
                    assessment.score,
                    assessment.is_orphaned,
                    assessment.is_inactive,
                )

                result.analyzed += 1
                if assessment.score >= HIGH_RISK_THRESHOLD:
                    result.high_risk += 1
                if assessment.is_orphaned:
                    result.orphaned += 1
                if assessment.is_inactive:
                    result.inactive += 1
        except Exception as exc:
            logger.error(f"Risk analysis failed for user {user_id}: {exc}")
            raise RiskScoringError(f"Failed to analyze sheet risks: {exc}") from exc

        logger.info(
            f"Risk analysis complete for user {user_id}",
            extra={"analyzed": result.analyzed, "high_risk": result.high_risk},
        )
        return result


risk_scoring_service = RiskScoringService()
