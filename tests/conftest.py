"""
Test configuration and fixtures for pytest.

This module provides shared fixtures used across all tests:
- Test database (SQLite in-memory for speed)
- Test client (FastAPI TestClient)
- A fixed ENCRYPTION_KEY so credentials can be encrypted
- Users per subscription tier, with tokens and auth headers
- Sample sheet data
"""

import pytest
from datetime import datetime, timedelta, timezone
from typing import Callable, Generator

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401  registers every table on Base.metadata
from app.main import app as fastapi_app
from app.core.config import settings
from app.core.security import create_access_token, hash_password
from app.db.base import Base
from app.db.session import get_db
from app.models.permission import Permission
from app.models.sheet import Sheet
from app.models.user import (
    TIER_BUSINESS,
    TIER_INDIVIDUAL_FREE,
    TIER_INDIVIDUAL_PAID,
    User,
)
from app.models.workspace_user import WorkspaceUser


# 64 hex characters = 32-byte AES-256 key
TEST_ENCRYPTION_KEY = "0123456789abcdef" * 4


# ---------------------------------------------------------------------------
# TEST DATABASE SETUP
# ---------------------------------------------------------------------------
# Use SQLite in-memory for fast tests (no PostgreSQL dependency)
# StaticPool keeps the same connection across all operations

SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},  # Required for SQLite
    poolclass=StaticPool,  # Keep connection alive across operations
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(autouse=True)
def encryption_key(monkeypatch):
    """Every test runs with a valid encryption key."""
    monkeypatch.setattr(settings, "ENCRYPTION_KEY", TEST_ENCRYPTION_KEY)
    return TEST_ENCRYPTION_KEY


# ---------------------------------------------------------------------------
# DATABASE FIXTURES
# ---------------------------------------------------------------------------

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Create a fresh database for each test function.

    - Creates all tables
    - Yields a session for the test
    - Drops all tables after test (clean slate)
    """
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db: Session) -> Generator[TestClient, None, None]:
    """
    Create a test client with the test database.

    Overrides the get_db dependency to use our test database.
    """
    def override_get_db():
        try:
            yield db
        finally:
            pass

    fastapi_app.dependency_overrides[get_db] = override_get_db

    with TestClient(fastapi_app) as test_client:
        yield test_client

    fastapi_app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# USER FIXTURES
# ---------------------------------------------------------------------------

@pytest.fixture
def make_user(db: Session) -> Callable[..., User]:
    """Factory: make_user("a@x.com", tier="business") → persisted User."""
    def _make(email: str = "test@example.com", tier: str = TIER_INDIVIDUAL_FREE) -> User:
        user = User(
            email=email,
            hashed_password=hash_password("testpassword"),
            tier=tier,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def test_user(make_user) -> User:
    """Free-tier user "test@example.com" with password "testpassword"."""
    return make_user("test@example.com", TIER_INDIVIDUAL_FREE)


@pytest.fixture
def paid_user(make_user) -> User:
    return make_user("paid@example.com", TIER_INDIVIDUAL_PAID)


@pytest.fixture
def business_user(make_user) -> User:
    return make_user("admin@acme.com", TIER_BUSINESS)


def headers_for(user: User) -> dict:
    token = create_access_token(subject=str(user.id), email=user.email, tier=user.tier)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    return headers_for(test_user)


@pytest.fixture
def paid_headers(paid_user: User) -> dict:
    return headers_for(paid_user)


@pytest.fixture
def business_headers(business_user: User) -> dict:
    return headers_for(business_user)


# ---------------------------------------------------------------------------
# SHEET FIXTURES
# ---------------------------------------------------------------------------

@pytest.fixture
def make_sheet(db: Session) -> Callable[..., Sheet]:
    """
    Factory for stored sheets.

    make_sheet(user, "file-1", risk_score=80, permissions=[{"type": "anyone", ...}])
    """
    counter = {"n": 0}

    def _make(user: User, external_id: str = None, permissions=None, **fields) -> Sheet:
        counter["n"] += 1
        external_id = external_id or f"file-{counter['n']}"
        now = datetime.now(timezone.utc)
        values = {
            "name": f"Sheet {counter['n']}",
            "owner_email": user.email,
            "url": f"https://docs.google.com/spreadsheets/d/{external_id}",
            "created_at": now - timedelta(days=30),
            "last_modified_at": now - timedelta(days=1),
        }
        values.update(fields)

        sheet = Sheet(
            user_id=user.id,
            external_id=external_id,
            permission_count=len(permissions or []),
            **values,
        )
        db.add(sheet)
        db.flush()

        for i, data in enumerate(permissions or []):
            db.add(
                Permission(
                    sheet_id=sheet.id,
                    external_permission_id=data.get("id", f"perm-{i}"),
                    email=data.get("email"),
                    role=data.get("role", "reader"),
                    type=data.get("type", "user"),
                )
            )

        db.commit()
        db.refresh(sheet)
        return sheet

    return _make


@pytest.fixture
def roster(db: Session) -> Callable[..., None]:
    """roster(user, "a@acme.com", "b@acme.com") stores workspace members."""
    def _add(user: User, *emails: str) -> None:
        for email in emails:
            db.add(WorkspaceUser(user_id=user.id, platform="google_workspace", email=email))
        db.commit()

    return _add
