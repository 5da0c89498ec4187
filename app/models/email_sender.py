"""
Email Sender model - aggregated inbox statistics for one sender address.

Built from Gmail message metadata by app.services.sender_service and upserted
per (user_id, sender_email).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base

if TYPE_CHECKING:
    from app.models.user import User


class EmailSender(Base):
    """SQLAlchemy ORM model for the 'email_senders' table."""

    __tablename__ = "email_senders"

    __table_args__ = (
        UniqueConstraint("user_id", "sender_email", name="uq_email_senders_user_sender"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # ---------------------------------------------------------------------------
    # SENDER
    # ---------------------------------------------------------------------------
    sender_email: Mapped[str] = mapped_column(String(255), nullable=False)
    sender_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # ---------------------------------------------------------------------------
    # COUNTS AND DATES
    # ---------------------------------------------------------------------------
    email_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    attachment_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    first_email_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    last_email_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # ---------------------------------------------------------------------------
    # UNSUBSCRIBE / VERIFICATION
    # ---------------------------------------------------------------------------
    # unsubscribe_link: from the List-Unsubscribe header (https preferred over mailto)
    unsubscribe_link: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    has_unsubscribe: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # is_verified: False when SPF or DKIM failed on any message from this sender
    is_verified: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    is_unsubscribed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    unsubscribed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    last_synced_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )

    owner: Mapped["User"] = relationship("User", back_populates="email_senders")

    def __repr__(self) -> str:
        return f"<EmailSender(user_id={self.user_id}, sender='{self.sender_email}')>"
