"""
Sheet model - a Google spreadsheet discovered in the user's Drive.

Discovery upserts one row per (user_id, external_id) and replaces the
permission snapshot underneath it. The risk-scoring pass then rewrites
risk_score, is_orphaned and is_inactive from scratch.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base

if TYPE_CHECKING:
    from app.models.permission import Permission
    from app.models.user import User


class Sheet(Base):
    """
    SQLAlchemy ORM model for the 'sheets' table.

    Attributes of note:
    - external_id: the Drive file id
    - permission_count: number of permissions seen at the last discovery
    - risk_score: 0-100, computed by app.services.risk_scoring
    """

    __tablename__ = "sheets"

    __table_args__ = (
        UniqueConstraint("user_id", "external_id", name="uq_sheets_user_external_id"),
        CheckConstraint("risk_score >= 0 AND risk_score <= 100", name="ck_sheets_risk_score_range"),
    )

    # ---------------------------------------------------------------------------
    # IDENTIFICATION
    # ---------------------------------------------------------------------------
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    external_id: Mapped[str] = mapped_column(String(255), nullable=False)

    # ---------------------------------------------------------------------------
    # DRIVE METADATA
    # ---------------------------------------------------------------------------
    name: Mapped[str] = mapped_column(Text, nullable=False)
    owner_email: Mapped[str] = mapped_column(String(255), nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_modified_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    permission_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # ---------------------------------------------------------------------------
    # RISK
    # ---------------------------------------------------------------------------
    is_orphaned: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_inactive: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    risk_score: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    last_synced_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    # ---------------------------------------------------------------------------
    # RELATIONSHIPS
    # ---------------------------------------------------------------------------
    owner: Mapped["User"] = relationship("User", back_populates="sheets")

    permissions: Mapped[list["Permission"]] = relationship(
        "Permission",
        back_populates="sheet",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Sheet(id={self.id}, external_id='{self.external_id}', risk={self.risk_score})>"
