"""
Dependencies module - reusable FastAPI dependencies for route handlers.

get_current_user validates the JWT; require_tier() builds tier gates on top
of it. All failures are raised as ApiError so they render with the standard
error envelope.
"""

from typing import Callable

from fastapi import Depends, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
from sqlalchemy.orm import Session

from app.core.errors import ApiError
from app.core.security import decode_access_token
from app.db.session import get_db
from app.models.user import (
    TIER_BUSINESS,
    TIER_INDIVIDUAL_PAID,
    User,
)
from app.repositories.user import UserRepository

# ---------------------------------------------------------------------------
# SECURITY SCHEME
# ---------------------------------------------------------------------------
# auto_error=False: a missing header reaches get_current_user as None so it
# gets the same 401 envelope as a bad token
security = HTTPBearer(auto_error=False)


def _unauthorized(message: str) -> ApiError:
    return ApiError(status.HTTP_401_UNAUTHORIZED, message, code="UNAUTHORIZED")


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """
    Validate the bearer token and return the authenticated user.

    Raises:
        401: Missing header, bad signature, expired token, malformed
             subject, or a user that no longer exists
    """
    if credentials is None:
        raise _unauthorized("Missing or invalid authorization header")

    try:
        payload = decode_access_token(credentials.credentials)
    except JWTError:
        # Covers ExpiredSignatureError and signature failures alike
        raise _unauthorized("Invalid or expired token")

    # "sub" holds the integer user id as a string
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise _unauthorized("Invalid token payload")

    user = UserRepository(db).find_by_id(user_id)
    if user is None:
        raise _unauthorized("User not found")

    return user


# ---------------------------------------------------------------------------
# TIER GATES
# ---------------------------------------------------------------------------

def require_tier(*tiers: str) -> Callable[..., User]:
    """
    Dependency factory: allow only users whose tier is one of `tiers`.

    Usage:
        @router.get("/findings")
        def findings(user: User = Depends(require_tier("business"))): ...

    The tier is read from the database, not from the token claim, so an
    upgrade takes effect without signing in again.
    """
    allowed = list(tiers)

    def dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.tier not in allowed:
            raise ApiError(
                status.HTTP_403_FORBIDDEN,
                "Your subscription tier does not include this feature",
                code="TIER_REQUIRED",
                extra={"requiredTiers": allowed, "currentTier": current_user.tier},
            )
        return current_user

    return dependency


def require_paid_tier() -> Callable[..., User]:
    return require_tier(TIER_INDIVIDUAL_PAID, TIER_BUSINESS)


def require_business_tier() -> Callable[..., User]:
    return require_tier(TIER_BUSINESS)
