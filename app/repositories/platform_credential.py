"""Platform credential persistence (encrypted service-account documents)."""

from datetime import datetime, timezone
from typing import List, Optional

from app.models.platform_credential import PlatformCredential
from app.repositories.base import BaseRepository, read_operation


class PlatformCredentialRepository(BaseRepository):

    def upsert(
        self,
        user_id: int,
        platform: str,
        encrypted_credentials: str,
        credential_type: str,
    ) -> PlatformCredential:
        """
        Store credentials for (user, platform), replacing any existing row.

        Re-saving credentials re-activates a deactivated row.
        """
        credential = self.find_by_user_and_platform(user_id, platform)

        with self._write("upsert platform credential"):
            if credential:
                credential.credentials = encrypted_credentials
                credential.credential_type = credential_type
                credential.is_active = True
            else:
                credential = PlatformCredential(
                    user_id=user_id,
                    platform=platform,
                    credential_type=credential_type,
                    credentials=encrypted_credentials,
                    is_active=True,
                )
                self.db.add(credential)

        self.db.refresh(credential)
        return credential

    @read_operation("find platform credential")
    def find_by_user_and_platform(self, user_id: int, platform: str) -> Optional[PlatformCredential]:
        return self.db.query(PlatformCredential).filter(
            PlatformCredential.user_id == user_id,
            PlatformCredential.platform == platform,
        ).first()

    @read_operation("list platform credentials")
    def find_all_by_user(self, user_id: int) -> List[PlatformCredential]:
        return (
            self.db.query(PlatformCredential)
            .filter(PlatformCredential.user_id == user_id)
            .order_by(PlatformCredential.created_at.desc())
            .all()
        )

    def mark_used(self, credential: PlatformCredential) -> None:
        with self._write("mark platform credential used"):
            credential.last_used_at = datetime.now(timezone.utc)

    def delete(self, user_id: int, platform: str) -> bool:
        """Returns False when there was nothing to delete."""
        credential = self.find_by_user_and_platform(user_id, platform)
        if credential is None:
            return False

        with self._write("delete platform credential"):
            self.db.delete(credential)
        return True
