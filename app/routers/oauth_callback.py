"""
Shared handling of Google OAuth callbacks.

Both consent flows (Drive under /api/platforms, Gmail under /api/gmail) end
the same way: Google redirects the browser to our callback with `code` and
`state` (the Shenv user id), we store the tokens, and we send the browser
back to the frontend:

    {FRONTEND_URL}/<area>/auth-success
    {FRONTEND_URL}/<area>/auth-error?error=<message>

The callback is unauthenticated (it is a browser redirect), so every failure
becomes an auth-error redirect instead of a JSON error.
"""

import logging
from typing import Optional
from urllib.parse import quote

from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from app.core.config import settings
from app.repositories.user import UserRepository
from app.services.credential_service import credential_service
from app.services.errors import ServiceError
from app.services.oauth_token_service import OAuthTokenService


logger = logging.getLogger("shenv.routers.oauth")


def _error_redirect(area: str, message: str) -> RedirectResponse:
    return RedirectResponse(
        url=f"{settings.FRONTEND_URL}/{area}/auth-error?error={quote(message)}"
    )


async def complete_oauth_callback(
    area: str,
    provider: str,
    oauth_service: OAuthTokenService,
    code: Optional[str],
    state: Optional[str],
    error: Optional[str],
    db: Session,
) -> RedirectResponse:
    """
    Store the tokens for the user named in `state` and redirect to the frontend.

    Args:
        area: Frontend section to return to ("drive" or "gmail")
        provider: OAuth provider the tokens are stored under
    """
    if error:
        logger.warning(f"{provider} consent denied or failed: {error}")
        return _error_redirect(area, error)

    if not code or not state:
        return _error_redirect(area, "Missing authorization code or state")

    try:
        user_id = int(state)
    except ValueError:
        return _error_redirect(area, "Invalid state parameter")

    if UserRepository(db).find_by_id(user_id) is None:
        return _error_redirect(area, "User not found")

    try:
        user_info = await credential_service.connect_oauth_account(
            user_id, provider, oauth_service, code, db
        )
    except ServiceError as exc:
        logger.error(f"{provider} OAuth callback failed for user {user_id}: {exc}")
        return _error_redirect(area, exc.message)

    logger.info(f"{provider} connected for user {user_id}", extra={"google_email": user_info.email})
    return RedirectResponse(url=f"{settings.FRONTEND_URL}/{area}/auth-success")
