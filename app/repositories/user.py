"""User persistence: account creation and lookup for sign-up / sign-in."""

import logging
from typing import Optional

from app.core.security import hash_password, verify_password
from app.models.user import TIER_INDIVIDUAL_FREE, User
from app.repositories.base import BaseRepository, read_operation


logger = logging.getLogger("shenv.repositories.user")


class UserRepository(BaseRepository):

    def create(self, email: str, password: str, tier: str = TIER_INDIVIDUAL_FREE) -> User:
        """Create a user with a bcrypt-hashed password. Email is lower-cased."""
        user = User(
            email=email.strip().lower(),
            hashed_password=hash_password(password),
            tier=tier,
        )
        with self._write("create user"):
            self.db.add(user)
        self.db.refresh(user)

        logger.info(f"Created user {user.id}", extra={"tier": tier})
        return user

    @read_operation("find user by email")
    def find_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email.strip().lower()).first()

    @read_operation("find user")
    def find_by_id(self, user_id: int) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def verify_password(user: User, password: str) -> bool:
        return verify_password(password, user.hashed_password)
