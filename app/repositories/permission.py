"""Permission snapshot persistence for discovered sheets."""

from datetime import datetime, timezone
from typing import Any, Collection, Dict, List, Optional

from sqlalchemy import func

from app.models.permission import Permission
from app.models.sheet import Sheet
from app.repositories.base import BaseRepository, read_operation


class PermissionRepository(BaseRepository):

    def upsert(self, sheet_id: int, data: Dict[str, Any]) -> Permission:
        """Insert or update a permission keyed by (sheet_id, external_permission_id)."""
        with self._read("find permission"):
            permission = self.db.query(Permission).filter(
                Permission.sheet_id == sheet_id,
                Permission.external_permission_id == data["external_permission_id"],
            ).first()

        with self._write("upsert permission"):
            if permission is None:
                permission = Permission(
                    sheet_id=sheet_id,
                    external_permission_id=data["external_permission_id"],
                )
                self.db.add(permission)

            permission.email = data.get("email")
            permission.role = data["role"]
            permission.type = data["type"]
            permission.display_name = data.get("display_name")
            permission.snapshot_date = datetime.now(timezone.utc)

        self.db.refresh(permission)
        return permission

    @read_operation("list permissions")
    def find_all_by_sheet(self, sheet_id: int) -> List[Permission]:
        return (
            self.db.query(Permission)
            .filter(Permission.sheet_id == sheet_id)
            .order_by(Permission.id)
            .all()
        )

    @read_operation("count permissions")
    def count_by_sheet(self, sheet_id: int) -> int:
        return (
            self.db.query(func.count(Permission.id))
            .filter(Permission.sheet_id == sheet_id)
            .scalar()
            or 0
        )

    @read_operation("find permissions by email")
    def find_all_by_email(self, email: str, user_id: Optional[int] = None) -> List[Permission]:
        """Every grant to an email, optionally limited to one user's sheets."""
        query = self.db.query(Permission).filter(func.lower(Permission.email) == email.lower())
        if user_id is not None:
            query = query.join(Sheet, Sheet.id == Permission.sheet_id).filter(
                Sheet.user_id == user_id
            )
        return query.all()

    def delete_missing(self, sheet_id: int, keep_ids: Collection[str]) -> int:
        """Drop permissions of a sheet that no longer appear in Drive."""
        query = self.db.query(Permission).filter(Permission.sheet_id == sheet_id)
        if keep_ids:
            query = query.filter(Permission.external_permission_id.notin_(list(keep_ids)))

        with self._write("delete stale permissions"):
            deleted = query.delete(synchronize_session=False)
        return deleted

    def delete_all_by_sheet(self, sheet_id: int) -> int:
        with self._write("delete permissions"):
            deleted = (
                self.db.query(Permission)
                .filter(Permission.sheet_id == sheet_id)
                .delete(synchronize_session=False)
            )
        return deleted
