"""
Security utilities - password hashing and JWT token creation.
These are the core security functions used by authentication endpoints.
"""

from datetime import datetime, timedelta, timezone  # For token expiration

from jose import jwt  # python-jose library for JWT encoding/decoding
from passlib.context import CryptContext  # Password hashing library

from app.core.config import settings  # App configuration

# ---------------------------------------------------------------------------
# PASSWORD HASHING CONTEXT
# ---------------------------------------------------------------------------
# CryptContext: Passlib's high-level interface for password hashing
# - schemes=["bcrypt"]: Use bcrypt algorithm
# - deprecated="auto": If we add new schemes later, old hashes still work
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """
    Hash a plaintext password using bcrypt.

    Args:
        password: The user's plaintext password

    Returns:
        A bcrypt hash string (e.g., "$2b$12$LQv3c1yqBw...")
        This is what gets stored in the database.
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plaintext password against a stored hash.

    Returns:
        True if passwords match, False otherwise
    """
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(
    subject: str,
    email: str,
    tier: str,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a JWT access token.

    Args:
        subject: The user's ID, stored in the "sub" claim
        email: The user's email, stored in the "email" claim
        tier: The user's subscription tier, stored in the "tier" claim
        expires_delta: Optional custom expiration time
                      If None, uses ACCESS_TOKEN_EXPIRE_MINUTES from settings

    Returns:
        A signed JWT string (e.g., "eyJhbGciOiJIUzI1NiIs...")

    Note:
        The payload is signed, not encrypted. The tier claim is informational;
        tier checks always read the tier from the database.
    """
    expire = datetime.now(timezone.utc) + (
        expires_delta
        if expires_delta
        else timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )

    to_encode = {"sub": subject, "email": email, "tier": tier, "exp": expire}

    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict:
    """
    Verify signature and expiration, then return the token payload.

    Raises:
        jose.JWTError: If the token is invalid or expired
    """
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
