"""
Auth schemas - Pydantic models for sign-up / sign-in request and response validation.
"""

from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from app.schemas.common import CamelModel
from app.schemas.user import UserOut


class SignupRequest(BaseModel):
    """
    Schema for POST /auth/signup request body.

    Example request body:
    {
        "email": "ana@example.com",
        "password": "secret123",
        "tier": "individual_paid"
    }

    An unknown tier is not rejected; the route falls back to individual_free.
    """
    email: EmailStr

    # Minimum 6 characters; longer passwords are fine
    password: str = Field(..., min_length=6)

    tier: Optional[str] = None


class SigninRequest(BaseModel):
    """Schema for POST /auth/signin request body."""
    email: EmailStr
    password: str


class AuthResponse(CamelModel):
    """
    Returned by signup and signin.

    The client stores `token` and sends it as
    "Authorization: Bearer <token>" on every authenticated request.
    """
    success: bool = True
    token: str
    user: UserOut


class MeResponse(CamelModel):
    success: bool = True
    user: UserOut
