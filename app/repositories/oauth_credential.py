"""OAuth token persistence. Token values arrive here already encrypted."""

from datetime import datetime
from typing import Optional

from app.models.oauth_credential import OAuthCredential
from app.repositories.base import BaseRepository, read_operation


class OAuthCredentialRepository(BaseRepository):

    def upsert(
        self,
        user_id: int,
        provider: str,
        access_token: str,
        refresh_token: str,
        expires_at: datetime,
        scope: Optional[str] = None,
    ) -> OAuthCredential:
        credential = self.find_by_user(user_id, provider)

        with self._write("upsert oauth credential"):
            if credential:
                credential.access_token = access_token
                credential.refresh_token = refresh_token
                credential.expires_at = expires_at
                credential.scope = scope
            else:
                credential = OAuthCredential(
                    user_id=user_id,
                    provider=provider,
                    access_token=access_token,
                    refresh_token=refresh_token,
                    expires_at=expires_at,
                    scope=scope,
                )
                self.db.add(credential)

        self.db.refresh(credential)
        return credential

    @read_operation("find oauth credential")
    def find_by_user(self, user_id: int, provider: str) -> Optional[OAuthCredential]:
        return self.db.query(OAuthCredential).filter(
            OAuthCredential.user_id == user_id,
            OAuthCredential.provider == provider,
        ).first()

    def has_tokens(self, user_id: int, provider: str) -> bool:
        return self.find_by_user(user_id, provider) is not None

    def update_access_token(
        self,
        credential: OAuthCredential,
        access_token: str,
        expires_at: datetime,
    ) -> OAuthCredential:
        with self._write("update oauth access token"):
            credential.access_token = access_token
            credential.expires_at = expires_at
        return credential

    def delete_by_user(self, user_id: int, provider: str) -> bool:
        credential = self.find_by_user(user_id, provider)
        if credential is None:
            return False

        with self._write("delete oauth credential"):
            self.db.delete(credential)
        return True
