"""
OAuth Credential model - stores Google OAuth tokens for individual users.

Individual (non-Workspace) users connect Google Drive and Gmail through the
OAuth consent flow. Each connection is one row, keyed by (user_id, provider):

    provider="google_drive"  - used for spreadsheet discovery
    provider="gmail"         - used for sender analysis and cleanup

Both tokens are stored encrypted ("ivHex:cipherHex", see app.core.encryption).
Decryption happens in the credential service, never in the model.

Example Usage:
    credential = OAuthCredential(
        user_id=user.id,
        provider=PROVIDER_GOOGLE_DRIVE,
        access_token=encrypt("ya29.xxx"),
        refresh_token=encrypt("1//xxx"),
        expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
        scope="https://www.googleapis.com/auth/drive.readonly ...",
    )
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional, TYPE_CHECKING

from sqlalchemy import String, DateTime, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base

if TYPE_CHECKING:
    from app.models.user import User


PROVIDER_GOOGLE_DRIVE = "google_drive"
PROVIDER_GMAIL = "gmail"

OAUTH_PROVIDERS = (PROVIDER_GOOGLE_DRIVE, PROVIDER_GMAIL)


class OAuthCredential(Base):
    """
    SQLAlchemy ORM model for the 'oauth_credentials' table.

    Key Features:
    - One row per provider per user (unique constraint on user_id + provider)
    - Stores both access and refresh tokens (encrypted) for persistent access
    - Tracks token expiration for proactive refresh
    """

    __tablename__ = "oauth_credentials"

    __table_args__ = (
        UniqueConstraint("user_id", "provider", name="uq_oauth_credentials_user_provider"),
    )

    # ---------------------------------------------------------------------------
    # PRIMARY KEY
    # ---------------------------------------------------------------------------
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # ---------------------------------------------------------------------------
    # FOREIGN KEY - USER RELATIONSHIP
    # ---------------------------------------------------------------------------
    # ondelete="CASCADE": If user is deleted, delete their OAuth credentials
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # ---------------------------------------------------------------------------
    # PROVIDER IDENTIFICATION
    # ---------------------------------------------------------------------------
    # provider: "google_drive" or "gmail"
    provider: Mapped[str] = mapped_column(String(50), nullable=False, index=True)

    # ---------------------------------------------------------------------------
    # TOKEN DATA (encrypted)
    # ---------------------------------------------------------------------------
    access_token: Mapped[str] = mapped_column(Text, nullable=False)
    refresh_token: Mapped[str] = mapped_column(Text, nullable=False)

    # ---------------------------------------------------------------------------
    # TOKEN METADATA
    # ---------------------------------------------------------------------------
    # expires_at: When the access_token expires
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # scope: Space-separated scopes granted by the user
    scope: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

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
    owner: Mapped["User"] = relationship("User", back_populates="oauth_credentials")

    # ---------------------------------------------------------------------------
    # HELPER METHODS
    # ---------------------------------------------------------------------------
    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """
        Check if the access token has expired.

        Returns:
            True if token is expired or about to expire (within 5 min buffer)
            True if expires_at is not set (assume expired)
        """
        if self.expires_at is None:
            return True

        expires_at = self.expires_at
        # SQLite drops tzinfo; stored values are always UTC
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)

        now = now or datetime.now(timezone.utc)
        return now >= (expires_at - timedelta(minutes=5))

    def has_scope(self, scope: str) -> bool:
        """Check if a specific scope was granted."""
        if not self.scope:
            return False
        return scope in self.scope.split()

    def __repr__(self) -> str:
        return f"<OAuthCredential(user_id={self.user_id}, provider='{self.provider}')>"
