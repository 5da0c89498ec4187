"""
Tests for authentication endpoints and dependencies.

These tests verify:
- Sign-up (tiers, duplicates, validation)
- Sign-in (unknown user, wrong password)
- Bearer token handling on protected routes
- Tier gates and their 403 body
"""

from datetime import timedelta

from fastapi.testclient import TestClient

from app.core.security import create_access_token
from app.models.user import User


class TestSignup:
    """Tests for POST /auth/signup."""

    def test_signup_success(self, client: TestClient, db):
        """Should create the user and return a token."""
        response = client.post(
            "/auth/signup",
            json={"email": "New@Example.com", "password": "secret1", "tier": "business"},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        assert data["token"]
        assert data["user"]["email"] == "new@example.com"
        assert data["user"]["tier"] == "business"
        assert "createdAt" in data["user"]
        assert "hashedPassword" not in data["user"]

        # The password is stored hashed
        user = db.query(User).filter(User.email == "new@example.com").one()
        assert user.hashed_password != "secret1"

    def test_signup_defaults_to_free_tier(self, client: TestClient):
        response = client.post(
            "/auth/signup", json={"email": "a@example.com", "password": "secret1"}
        )

        assert response.json()["user"]["tier"] == "individual_free"

    def test_signup_unknown_tier_falls_back(self, client: TestClient):
        """An unknown tier is not an error."""
        response = client.post(
            "/auth/signup",
            json={"email": "a@example.com", "password": "secret1", "tier": "platinum"},
        )

        assert response.status_code == 201
        assert response.json()["user"]["tier"] == "individual_free"

    def test_signup_duplicate_email(self, client: TestClient, test_user: User):
        response = client.post(
            "/auth/signup", json={"email": "test@example.com", "password": "secret1"}
        )

        assert response.status_code == 400
        assert response.json() == {
            "error": True,
            "message": "User with this email already exists",
            "code": "EMAIL_EXISTS",
        }

    def test_signup_short_password(self, client: TestClient):
        response = client.post(
            "/auth/signup", json={"email": "a@example.com", "password": "12345"}
        )

        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["details"][0]["field"] == "password"

    def test_signup_invalid_email(self, client: TestClient):
        response = client.post(
            "/auth/signup", json={"email": "not-an-email", "password": "secret1"}
        )

        assert response.status_code == 422


class TestSignin:
    """Tests for POST /auth/signin."""

    def test_signin_success(self, client: TestClient, test_user: User):
        response = client.post(
            "/auth/signin", json={"email": "test@example.com", "password": "testpassword"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["user"]["id"] == test_user.id

        # The token works on a protected route
        me = client.get("/auth/me", headers={"Authorization": f"Bearer {data['token']}"})
        assert me.status_code == 200
        assert me.json()["user"]["email"] == "test@example.com"

    def test_signin_unknown_user(self, client: TestClient):
        response = client.post(
            "/auth/signin", json={"email": "nobody@example.com", "password": "whatever"}
        )

        assert response.status_code == 404
        assert response.json()["code"] == "USER_NOT_FOUND"

    def test_signin_wrong_password(self, client: TestClient, test_user: User):
        response = client.post(
            "/auth/signin", json={"email": "test@example.com", "password": "wrongpass"}
        )

        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_PASSWORD"


class TestBearerToken:
    """Tests for get_current_user via GET /auth/me."""

    def test_missing_header(self, client: TestClient):
        response = client.get("/auth/me")

        assert response.status_code == 401
        assert response.json() == {
            "error": True,
            "message": "Missing or invalid authorization header",
            "code": "UNAUTHORIZED",
        }

    def test_garbage_token(self, client: TestClient):
        response = client.get("/auth/me", headers={"Authorization": "Bearer not.a.jwt"})

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid or expired token"

    def test_expired_token(self, client: TestClient, test_user: User):
        token = create_access_token(
            subject=str(test_user.id),
            email=test_user.email,
            tier=test_user.tier,
            expires_delta=timedelta(minutes=-1),
        )

        response = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid or expired token"

    def test_non_numeric_subject(self, client: TestClient):
        token = create_access_token(subject="abc", email="x@example.com", tier="business")

        response = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid token payload"

    def test_deleted_user(self, client: TestClient):
        token = create_access_token(subject="9999", email="gone@example.com", tier="business")

        response = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401
        assert response.json()["message"] == "User not found"


class TestTierGates:
    """Tests for require_tier()."""

    def test_free_tier_blocked_from_findings(self, client: TestClient, auth_headers: dict):
        response = client.get("/governance/findings", headers=auth_headers)

        assert response.status_code == 403
        body = response.json()
        assert body["code"] == "TIER_REQUIRED"
        assert body["requiredTiers"] == ["individual_paid", "business"]
        assert body["currentTier"] == "individual_free"

    def test_paid_tier_blocked_from_workspace(self, client: TestClient, paid_headers: dict):
        response = client.post(
            "/api/assets/workspace/discover",
            json={"adminEmail": "admin@acme.com"},
            headers=paid_headers,
        )

        assert response.status_code == 403
        assert response.json()["requiredTiers"] == ["business"]

    def test_tier_is_read_from_database(self, client: TestClient, db, test_user: User, auth_headers: dict):
        """An upgrade applies to a token issued before it."""
        test_user.tier = "individual_paid"
        db.commit()

        response = client.get("/governance/findings", headers=auth_headers)

        assert response.status_code == 200
