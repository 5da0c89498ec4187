"""
User model - represents a registered Shenv account.

A user signs up with email/password and picks a subscription tier. Everything
else (credentials, discovered sheets, roster, Gmail senders) hangs off the user.
"""

from __future__ import annotations

from datetime import datetime, timezone  # For timestamps with timezone awareness
from typing import TYPE_CHECKING

from sqlalchemy import String, DateTime, Integer  # Column types for database
from sqlalchemy.orm import Mapped, mapped_column, relationship  # SQLAlchemy 2.0 ORM tools

from app.db.base import Base  # Declarative base class that all models inherit from

if TYPE_CHECKING:
    from app.models.email_sender import EmailSender
    from app.models.oauth_credential import OAuthCredential
    from app.models.platform_credential import PlatformCredential
    from app.models.sheet import Sheet
    from app.models.workspace_user import WorkspaceUser


# ---------------------------------------------------------------------------
# SUBSCRIPTION TIERS
# ---------------------------------------------------------------------------
TIER_INDIVIDUAL_FREE = "individual_free"
TIER_INDIVIDUAL_PAID = "individual_paid"
TIER_BUSINESS = "business"

USER_TIERS = (TIER_INDIVIDUAL_FREE, TIER_INDIVIDUAL_PAID, TIER_BUSINESS)


class User(Base):
    """
    SQLAlchemy ORM model for the 'users' table.

    This represents a Shenv user who can:
    - Sign up and sign in with email/password
    - Connect Google Workspace (service account) or Google Drive / Gmail (OAuth)
    - Discover and risk-score their spreadsheets
    """

    __tablename__ = "users"

    # ---------------------------------------------------------------------------
    # PRIMARY KEY
    # ---------------------------------------------------------------------------
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # ---------------------------------------------------------------------------
    # USER CREDENTIALS
    # ---------------------------------------------------------------------------
    # email: stored lower-cased; unique and indexed for login lookups
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)

    # hashed_password: Bcrypt hash, never the plain text
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)

    # ---------------------------------------------------------------------------
    # SUBSCRIPTION
    # ---------------------------------------------------------------------------
    # tier: one of USER_TIERS. Gates workspace discovery (business) and
    # governance/reports (paid tiers).
    tier: Mapped[str] = mapped_column(
        String(50), nullable=False, default=TIER_INDIVIDUAL_FREE
    )

    # ---------------------------------------------------------------------------
    # TIMESTAMPS
    # ---------------------------------------------------------------------------
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # ---------------------------------------------------------------------------
    # RELATIONSHIPS
    # ---------------------------------------------------------------------------
    # Deleting a user removes everything they own (FKs are ON DELETE CASCADE too)
    platform_credentials: Mapped[list["PlatformCredential"]] = relationship(
        "PlatformCredential", back_populates="owner", cascade="all, delete-orphan"
    )
    oauth_credentials: Mapped[list["OAuthCredential"]] = relationship(
        "OAuthCredential", back_populates="owner", cascade="all, delete-orphan"
    )
    workspace_users: Mapped[list["WorkspaceUser"]] = relationship(
        "WorkspaceUser", back_populates="owner", cascade="all, delete-orphan"
    )
    sheets: Mapped[list["Sheet"]] = relationship(
        "Sheet", back_populates="owner", cascade="all, delete-orphan"
    )
    email_senders: Mapped[list["EmailSender"]] = relationship(
        "EmailSender", back_populates="owner", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', tier='{self.tier}')>"
