"""
Permission model - one sharing grant on a discovered sheet.

Mirrors a Drive permission resource. email is NULL for "anyone" and
"domain" grants.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base

if TYPE_CHECKING:
    from app.models.sheet import Sheet


# Drive permission types and the roles that can edit
PERMISSION_TYPE_USER = "user"
PERMISSION_TYPE_GROUP = "group"
PERMISSION_TYPE_DOMAIN = "domain"
PERMISSION_TYPE_ANYONE = "anyone"

EDITOR_ROLES = ("writer", "owner")


class Permission(Base):
    """SQLAlchemy ORM model for the 'permissions' table."""

    __tablename__ = "permissions"

    __table_args__ = (
        UniqueConstraint(
            "sheet_id", "external_permission_id", name="uq_permissions_sheet_external_id"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    sheet_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("sheets.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    external_permission_id: Mapped[str] = mapped_column(String(255), nullable=False)

    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    role: Mapped[str] = mapped_column(String(50), nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    display_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    snapshot_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )

    sheet: Mapped["Sheet"] = relationship("Sheet", back_populates="permissions")

    def __repr__(self) -> str:
        return f"<Permission(sheet_id={self.sheet_id}, type='{self.type}', role='{self.role}')>"
