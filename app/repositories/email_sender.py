"""Gmail sender aggregate persistence."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import case, func, or_

from app.models.email_sender import EmailSender
from app.repositories.base import BaseRepository, read_operation


SORT_COLUMNS = {
    "email_count": EmailSender.email_count,
    "attachment_count": EmailSender.attachment_count,
    "sender_email": EmailSender.sender_email,
    "sender_name": EmailSender.sender_name,
    "last_email_date": EmailSender.last_email_date,
    "first_email_date": EmailSender.first_email_date,
}


class EmailSenderRepository(BaseRepository):

    def upsert(self, user_id: int, data: Dict[str, Any]) -> EmailSender:
        """
        Insert or update the aggregate for (user_id, sender_email).

        A second upsert of the same pair overwrites the counts with the new
        aggregate rather than adding to them. Unsubscribe state set by the
        user is preserved.
        """
        sender_email = data["sender_email"].strip().lower()
        sender = self.find_by_sender_email(user_id, sender_email)

        with self._write("upsert email sender"):
            if sender is None:
                sender = EmailSender(user_id=user_id, sender_email=sender_email)
                self.db.add(sender)

            sender.sender_name = data.get("sender_name")
            sender.email_count = data.get("email_count", 0)
            sender.attachment_count = data.get("attachment_count", 0)
            sender.first_email_date = data.get("first_email_date")
            sender.last_email_date = data.get("last_email_date")
            sender.unsubscribe_link = data.get("unsubscribe_link")
            sender.has_unsubscribe = bool(data.get("unsubscribe_link"))
            sender.is_verified = data.get("is_verified", True)
            sender.last_synced_at = datetime.now(timezone.utc)

        self.db.refresh(sender)
        return sender

    @read_operation("find email sender")
    def find_by_id(self, sender_id: int) -> Optional[EmailSender]:
        return self.db.query(EmailSender).filter(EmailSender.id == sender_id).first()

    @read_operation("find email sender by email")
    def find_by_sender_email(self, user_id: int, sender_email: str) -> Optional[EmailSender]:
        return self.db.query(EmailSender).filter(
            EmailSender.user_id == user_id,
            EmailSender.sender_email == sender_email.strip().lower(),
        ).first()

    def _filtered(self, user_id: int, search: Optional[str], verified: Optional[bool]):
        query = self.db.query(EmailSender).filter(EmailSender.user_id == user_id)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(EmailSender.sender_email.ilike(pattern), EmailSender.sender_name.ilike(pattern))
            )
        if verified is not None:
            query = query.filter(EmailSender.is_verified == verified)
        return query

    @read_operation("list email senders")
    def find_all_by_user(
        self,
        user_id: int,
        search: Optional[str] = None,
        sort_by: str = "email_count",
        sort_order: str = "desc",
        verified: Optional[bool] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[EmailSender]:
        column = SORT_COLUMNS.get(sort_by, EmailSender.email_count)
        ordering = column.asc() if sort_order == "asc" else column.desc()

        return (
            self._filtered(user_id, search, verified)
            .order_by(ordering, EmailSender.id)
            .offset(offset)
            .limit(limit)
            .all()
        )

    @read_operation("count email senders")
    def count_by_user(
        self,
        user_id: int,
        search: Optional[str] = None,
        verified: Optional[bool] = None,
    ) -> int:
        return self._filtered(user_id, search, verified).count()

    @read_operation("compute sender stats")
    def get_stats(self, user_id: int) -> Dict[str, int]:
        total, emails, unverified, with_unsubscribe = (
            self.db.query(
                func.count(EmailSender.id),
                func.sum(EmailSender.email_count),
                func.sum(case((EmailSender.is_verified.is_(False), 1), else_=0)),
                func.sum(case((EmailSender.has_unsubscribe.is_(True), 1), else_=0)),
            )
            .filter(EmailSender.user_id == user_id)
            .one()
        )
        return {
            "total_senders": total or 0,
            "total_emails": int(emails or 0),
            "unverified_senders": int(unverified or 0),
            "with_unsubscribe": int(with_unsubscribe or 0),
        }

    def mark_as_unsubscribed(self, sender: EmailSender) -> EmailSender:
        with self._write("mark sender unsubscribed"):
            sender.is_unsubscribed = True
            sender.unsubscribed_at = datetime.now(timezone.utc)
        return sender

    def delete_by_id(self, sender_id: int) -> bool:
        sender = self.find_by_id(sender_id)
        if sender is None:
            return False

        with self._write("delete email sender"):
            self.db.delete(sender)
        return True

    def delete_all_by_user(self, user_id: int) -> int:
        with self._write("delete email senders"):
            deleted = (
                self.db.query(EmailSender)
                .filter(EmailSender.user_id == user_id)
                .delete(synchronize_session=False)
            )
        return deleted
