"""
Platform Credential model - connection credentials for a SaaS platform.

For Google Workspace this is the service-account JSON key (optionally used
with domain-wide delegation). The credential document is stored encrypted as
"ivHex:cipherHex" text; see app.services.credential_service.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base

if TYPE_CHECKING:
    from app.models.user import User


# ---------------------------------------------------------------------------
# PLATFORMS AND CREDENTIAL TYPES
# ---------------------------------------------------------------------------
# Only google_workspace has a discovery implementation; the others are
# accepted and stored so the frontend can show them as "connected".
PLATFORM_GOOGLE_WORKSPACE = "google_workspace"

PLATFORMS = (
    PLATFORM_GOOGLE_WORKSPACE,
    "microsoft_365",
    "zoho",
    "dropbox",
    "box",
    "other",
)

CREDENTIAL_TYPE_SERVICE_ACCOUNT = "service_account"

CREDENTIAL_TYPES = (CREDENTIAL_TYPE_SERVICE_ACCOUNT, "oauth", "api_key", "other")


class PlatformCredential(Base):
    """SQLAlchemy ORM model for the 'platform_credentials' table."""

    __tablename__ = "platform_credentials"

    __table_args__ = (
        UniqueConstraint("user_id", "platform", name="uq_platform_credentials_user_platform"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    platform: Mapped[str] = mapped_column(String(50), nullable=False)
    credential_type: Mapped[str] = mapped_column(String(50), nullable=False)

    # credentials: encrypted JSON document
    credentials: Mapped[str] = mapped_column(Text, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    # last_used_at: bumped every time discovery uses the credential
    last_used_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    owner: Mapped["User"] = relationship("User", back_populates="platform_credentials")

    def __repr__(self) -> str:
        return f"<PlatformCredential(user_id={self.user_id}, platform='{self.platform}')>"
