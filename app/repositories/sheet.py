"""
Sheet persistence: discovery upserts, listing with filters, and risk updates.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import case, func, or_

from app.models.sheet import Sheet
from app.repositories.base import BaseRepository, read_operation


# Threshold used by stats and governance for "high risk"
HIGH_RISK_THRESHOLD = 70

# Lower bound of the "medium" bucket in the risk distribution
MEDIUM_RISK_THRESHOLD = 40

SORT_COLUMNS = {
    "name": Sheet.name,
    "owner_email": Sheet.owner_email,
    "created_at": Sheet.created_at,
    "last_modified_at": Sheet.last_modified_at,
    "risk_score": Sheet.risk_score,
    "permission_count": Sheet.permission_count,
}


class SheetRepository(BaseRepository):

    def upsert(self, user_id: int, data: Dict[str, Any]) -> Sheet:
        """
        Insert or update a sheet keyed by (user_id, external_id).

        Risk fields are left alone; the scoring pass owns them.
        """
        sheet = self.find_by_external_id(user_id, data["external_id"])

        with self._write("upsert sheet"):
            if sheet is None:
                sheet = Sheet(user_id=user_id, external_id=data["external_id"])
                self.db.add(sheet)

            sheet.name = data["name"]
            sheet.owner_email = data["owner_email"]
            sheet.url = data["url"]
            sheet.created_at = data["created_at"]
            sheet.last_modified_at = data["last_modified_at"]
            sheet.permission_count = data.get("permission_count", 0)
            sheet.last_synced_at = datetime.now(timezone.utc)

        self.db.refresh(sheet)
        return sheet

    @read_operation("find sheet")
    def find_by_id(self, sheet_id: int) -> Optional[Sheet]:
        return self.db.query(Sheet).filter(Sheet.id == sheet_id).first()

    @read_operation("find sheet by external id")
    def find_by_external_id(self, user_id: int, external_id: str) -> Optional[Sheet]:
        return self.db.query(Sheet).filter(
            Sheet.user_id == user_id,
            Sheet.external_id == external_id,
        ).first()

    @read_operation("list sheets")
    def find_all_by_user(
        self,
        user_id: int,
        search: Optional[str] = None,
        is_orphaned: Optional[bool] = None,
        is_inactive: Optional[bool] = None,
        min_risk: Optional[int] = None,
        sort_by: str = "last_modified_at",
        sort_order: str = "desc",
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> Tuple[List[Sheet], int]:
        """
        Filtered, sorted page of a user's sheets.

        Returns:
            (rows, total) where total counts all matches before limit/offset
        """
        query = self.db.query(Sheet).filter(Sheet.user_id == user_id)

        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(Sheet.name.ilike(pattern), Sheet.owner_email.ilike(pattern))
            )
        if is_orphaned is not None:
            query = query.filter(Sheet.is_orphaned == is_orphaned)
        if is_inactive is not None:
            query = query.filter(Sheet.is_inactive == is_inactive)
        if min_risk is not None:
            query = query.filter(Sheet.risk_score >= min_risk)

        total = query.count()

        column = SORT_COLUMNS.get(sort_by, Sheet.last_modified_at)
        ordering = column.asc() if sort_order == "asc" else column.desc()
        query = query.order_by(ordering, Sheet.id)

        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)

        return query.all(), total

    @read_operation("count sheets")
    def count_by_user(self, user_id: int) -> int:
        return self.db.query(func.count(Sheet.id)).filter(Sheet.user_id == user_id).scalar() or 0

    @read_operation("compute sheet stats")
    def get_stats(self, user_id: int) -> Dict[str, Any]:
        total, orphaned, inactive, high_risk, average = (
            self.db.query(
                func.count(Sheet.id),
                func.sum(case((Sheet.is_orphaned.is_(True), 1), else_=0)),
                func.sum(case((Sheet.is_inactive.is_(True), 1), else_=0)),
                func.sum(case((Sheet.risk_score >= HIGH_RISK_THRESHOLD, 1), else_=0)),
                func.avg(Sheet.risk_score),
            )
            .filter(Sheet.user_id == user_id)
            .one()
        )

        return {
            "total_sheets": total or 0,
            "orphaned_sheets": int(orphaned or 0),
            "inactive_sheets": int(inactive or 0),
            "high_risk_sheets": int(high_risk or 0),
            "average_risk_score": round(float(average), 1) if average is not None else 0.0,
        }

    @read_operation("compute risk distribution")
    def get_risk_distribution(self, user_id: int) -> Dict[str, int]:
        """Sheet counts per risk bucket: low <40, medium 40-69, high >=70."""
        low, medium, high = (
            self.db.query(
                func.sum(case((Sheet.risk_score < MEDIUM_RISK_THRESHOLD, 1), else_=0)),
                func.sum(
                    case(
                        (
                            (Sheet.risk_score >= MEDIUM_RISK_THRESHOLD)
                            & (Sheet.risk_score < HIGH_RISK_THRESHOLD),
                            1,
                        ),
                        else_=0,
                    )
                ),
                func.sum(case((Sheet.risk_score >= HIGH_RISK_THRESHOLD, 1), else_=0)),
            )
            .filter(Sheet.user_id == user_id)
            .one()
        )
        return {"low": int(low or 0), "medium": int(medium or 0), "high": int(high or 0)}

    def update_risk(
        self,
        sheet_id: int,
        risk_score: int,
        is_orphaned: bool,
        is_inactive: bool,
    ) -> Sheet:
        """Overwrite the risk fields. The score is clamped to 0-100."""
        sheet = self.find_by_id(sheet_id)
        if sheet is None:
            raise LookupError(f"Sheet {sheet_id} not found")

        with self._write("update sheet risk"):
            sheet.risk_score = max(0, min(100, int(risk_score)))
            sheet.is_orphaned = is_orphaned
            sheet.is_inactive = is_inactive

        return sheet

    def delete_all_by_user(self, user_id: int) -> int:
        with self._write("delete sheets"):
            sheets = self.db.query(Sheet).filter(Sheet.user_id == user_id).all()
            for sheet in sheets:
                self.db.delete(sheet)
        return len(sheets)
