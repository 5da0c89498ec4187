"""
User schemas - what user data is exposed in API responses (never the password hash).
"""

from datetime import datetime

from app.schemas.common import CamelModel


class UserOut(CamelModel):
    """
    Schema for user data in API responses.

    Example response:
    {
        "id": 42,
        "email": "ana@example.com",
        "tier": "individual_paid",
        "createdAt": "2025-12-02T10:30:00Z"
    }
    """

    id: int
    email: str
    tier: str
    created_at: datetime
