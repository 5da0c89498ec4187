"""Workspace roster persistence."""

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Set

from sqlalchemy import func

from app.models.workspace_user import WorkspaceUser
from app.repositories.base import BaseRepository, read_operation


class WorkspaceUserRepository(BaseRepository):

    def upsert(self, user_id: int, data: Dict[str, Any]) -> WorkspaceUser:
        """
        Insert or update one roster member, keyed by (user_id, email).

        data keys: platform, email, full_name, is_admin, is_suspended,
        created_at, last_login_at.
        """
        email = data["email"].strip().lower()
        member = self.find_by_email(user_id, email)

        with self._write("upsert workspace user"):
            if member is None:
                member = WorkspaceUser(user_id=user_id, email=email)
                self.db.add(member)

            member.platform = data["platform"]
            member.full_name = data.get("full_name")
            member.is_admin = bool(data.get("is_admin", False))
            member.is_suspended = bool(data.get("is_suspended", False))
            member.created_at = data.get("created_at")
            member.last_login_at = data.get("last_login_at")
            member.last_synced_at = datetime.now(timezone.utc)

        self.db.refresh(member)
        return member

    def bulk_upsert(self, user_id: int, members: Iterable[Dict[str, Any]]) -> List[WorkspaceUser]:
        """Sequential upserts, one commit each."""
        return [self.upsert(user_id, data) for data in members]

    @read_operation("find workspace user")
    def find_by_email(
        self,
        user_id: int,
        email: str,
        platform: Optional[str] = None,
    ) -> Optional[WorkspaceUser]:
        query = self.db.query(WorkspaceUser).filter(
            WorkspaceUser.user_id == user_id,
            WorkspaceUser.email == email.strip().lower(),
        )
        if platform:
            query = query.filter(WorkspaceUser.platform == platform)
        return query.first()

    @read_operation("list workspace users")
    def find_all_by_user(self, user_id: int, platform: Optional[str] = None) -> List[WorkspaceUser]:
        query = self.db.query(WorkspaceUser).filter(WorkspaceUser.user_id == user_id)
        if platform:
            query = query.filter(WorkspaceUser.platform == platform)
        return query.order_by(WorkspaceUser.email).all()

    @read_operation("load workspace roster")
    def emails_for_user(self, user_id: int) -> Set[str]:
        """The roster as a set of lower-cased emails."""
        rows = self.db.query(WorkspaceUser.email).filter(WorkspaceUser.user_id == user_id).all()
        return {email.lower() for (email,) in rows}

    @read_operation("count workspace users")
    def count_by_user(self, user_id: int) -> int:
        return (
            self.db.query(func.count(WorkspaceUser.id))
            .filter(WorkspaceUser.user_id == user_id)
            .scalar()
            or 0
        )

    def delete_all_by_user(self, user_id: int) -> int:
        with self._write("delete workspace users"):
            deleted = (
                self.db.query(WorkspaceUser)
                .filter(WorkspaceUser.user_id == user_id)
                .delete(synchronize_session=False)
            )
        return deleted
