"""
Auth router - sign-up, sign-in and the current user's profile.
signup and signin are public; /auth/me requires a bearer token.
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.errors import ApiError
from app.core.security import create_access_token
from app.db.session import get_db
from app.deps import get_current_user
from app.models.user import TIER_INDIVIDUAL_FREE, USER_TIERS, User
from app.repositories.user import UserRepository
from app.schemas.auth import AuthResponse, MeResponse, SigninRequest, SignupRequest
from app.schemas.user import UserOut

logger = logging.getLogger("shenv.routers.auth")

# ---------------------------------------------------------------------------
# ROUTER SETUP
# ---------------------------------------------------------------------------
router = APIRouter(prefix="/auth", tags=["auth"])


def _issue_token(user: User) -> str:
    return create_access_token(subject=str(user.id), email=user.email, tier=user.tier)


# ---------------------------------------------------------------------------
# POST /auth/signup - Create a new account
# ---------------------------------------------------------------------------
@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def signup(payload: SignupRequest, db: Session = Depends(get_db)):
    """
    Register a new user and sign them in.

    Raises:
        400 Bad Request: If the email is already registered
        422: Invalid email or password shorter than 6 characters
    """
    users = UserRepository(db)

    # Step 1: Reject duplicates
    if users.find_by_email(payload.email):
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            "User with this email already exists",
            code="EMAIL_EXISTS",
        )

    # Step 2: Unknown tiers are not an error; they fall back to the free tier
    tier = payload.tier if payload.tier in USER_TIERS else TIER_INDIVIDUAL_FREE

    # Step 3: Create the user (password is bcrypt-hashed by the repository)
    user = users.create(email=payload.email, password=payload.password, tier=tier)

    logger.info(f"User {user.id} signed up", extra={"tier": tier})
    return AuthResponse(token=_issue_token(user), user=UserOut.model_validate(user))


# ---------------------------------------------------------------------------
# POST /auth/signin - Authenticate and get a JWT token
# ---------------------------------------------------------------------------
@router.post("/signin", response_model=AuthResponse)
def signin(payload: SigninRequest, db: Session = Depends(get_db)):
    """
    Authenticate with email/password.

    Raises:
        404 Not Found: No account with this email
        401 Unauthorized: Wrong password
    """
    users = UserRepository(db)

    user = users.find_by_email(payload.email)
    if user is None:
        raise ApiError(status.HTTP_404_NOT_FOUND, "User not found", code="USER_NOT_FOUND")

    if not users.verify_password(user, payload.password):
        raise ApiError(status.HTTP_401_UNAUTHORIZED, "Invalid password", code="INVALID_PASSWORD")

    return AuthResponse(token=_issue_token(user), user=UserOut.model_validate(user))


# ---------------------------------------------------------------------------
# GET /auth/me - Current user
# ---------------------------------------------------------------------------
@router.get("/me", response_model=MeResponse)
def me(current_user: User = Depends(get_current_user)):
    return MeResponse(user=UserOut.model_validate(current_user))
