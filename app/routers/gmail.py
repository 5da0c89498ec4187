"""
Gmail router - connect Gmail, analyze senders, clean up.

Flow:
1. POST /api/gmail/oauth/authorize → consent URL (gmail.readonly + gmail.modify)
2. Google → GET /api/gmail/oauth/callback → tokens stored encrypted
3. POST /api/gmail/senders/fetch → one page of the inbox grouped by sender
   (optionally stored); repeat with nextPageToken to go deeper
4. GET /api/gmail/senders → stored senders, biggest first
5. DELETE /api/gmail/senders/{id} → every message from the sender is
   permanently deleted in Gmail, then the sender row
   (POST /api/gmail/senders/bulk-delete does the same for many senders)
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.errors import ApiError
from app.db.session import get_db
from app.deps import get_current_user
from app.environments.google.gmail import GoogleGmailClient
from app.models.email_sender import EmailSender
from app.models.oauth_credential import PROVIDER_GMAIL
from app.models.user import User
from app.repositories.email_sender import EmailSenderRepository
from app.repositories.oauth_credential import OAuthCredentialRepository
from app.routers.oauth_callback import complete_oauth_callback
from app.schemas.common import MessageResponse
from app.schemas.gmail import BulkDeleteSendersRequest, FetchSendersRequest, SenderOut, SenderSummary
from app.schemas.platforms import AuthorizeResponse
from app.services.credential_service import credential_service
from app.services.errors import SenderServiceError
from app.services.oauth_token_service import get_gmail_oauth_service
from app.services.sender_service import sender_service

logger = logging.getLogger("shenv.routers.gmail")

router = APIRouter(prefix="/api/gmail", tags=["gmail"])


# Client sort keys (camelCase) → repository sort columns
SENDER_SORT_FIELDS = {
    "emailCount": "email_count",
    "attachmentCount": "attachment_count",
    "senderEmail": "sender_email",
    "senderName": "sender_name",
    "lastEmailDate": "last_email_date",
    "firstEmailDate": "first_email_date",
}


async def _require_gmail(user: User, db: Session) -> GoogleGmailClient:
    client = await sender_service.get_gmail_client(user.id, db)
    if client is None:
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            "Gmail is not connected. Please connect your Gmail account first.",
            code="GMAIL_NOT_CONNECTED",
        )
    return client


def _owned_sender(sender_id: int, user: User, db: Session) -> EmailSender:
    sender = EmailSenderRepository(db).find_by_id(sender_id)
    if sender is None or sender.user_id != user.id:
        raise ApiError(status.HTTP_404_NOT_FOUND, "Sender not found", code="NOT_FOUND")
    return sender


# ---------------------------------------------------------------------------
# OAUTH
# ---------------------------------------------------------------------------
@router.post("/oauth/authorize", response_model=AuthorizeResponse)
def gmail_authorize(current_user: User = Depends(get_current_user)):
    auth_url = get_gmail_oauth_service().get_authorization_url(current_user.id)
    return AuthorizeResponse(auth_url=auth_url)


@router.get("/oauth/callback")
async def gmail_callback(
    code: Optional[str] = Query(None, description="Authorization code from Google"),
    state: Optional[str] = Query(None, description="Shenv user id"),
    error: Optional[str] = Query(None, description="Error from Google"),
    db: Session = Depends(get_db),
):
    return await complete_oauth_callback(
        "gmail", PROVIDER_GMAIL, get_gmail_oauth_service(), code, state, error, db
    )


@router.get("/oauth/status")
def gmail_status(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    credential = OAuthCredentialRepository(db).find_by_user(current_user.id, PROVIDER_GMAIL)
    return {
        "success": True,
        "data": {
            "isConnected": credential is not None,
            "scope": credential.scope if credential else None,
            "expiresAt": credential.expires_at if credential else None,
        },
    }


@router.delete("/oauth/revoke", response_model=MessageResponse)
async def gmail_revoke(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Revoke at Google (best effort), then drop the tokens and stored senders."""
    disconnected = await credential_service.disconnect_oauth_account(
        current_user.id, PROVIDER_GMAIL, get_gmail_oauth_service(), db
    )
    if not disconnected:
        raise ApiError(status.HTTP_404_NOT_FOUND, "Gmail is not connected", code="NOT_CONNECTED")

    removed = EmailSenderRepository(db).delete_all_by_user(current_user.id)
    logger.info(f"Removed {removed} stored senders for user {current_user.id}")
    return MessageResponse(message="Gmail disconnected")


# ---------------------------------------------------------------------------
# SENDERS
# ---------------------------------------------------------------------------
@router.post("/senders/fetch")
async def fetch_senders(
    payload: FetchSendersRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Group one page of the inbox (up to maxMessages) by sender.

    Example request body:
    {"maxMessages": 500, "pageToken": null, "saveToDb": true}
    """
    gmail = await _require_gmail(current_user, db)

    result = await sender_service.fetch_senders(
        gmail, max_messages=payload.max_messages, page_token=payload.page_token
    )
    if payload.save_to_db:
        sender_service.save_senders(current_user.id, result.senders, db)

    return {
        "success": True,
        "data": {
            "senders": [SenderSummary.model_validate(s) for s in result.senders],
            "messagesProcessed": result.messages_processed,
            "messagesSkipped": result.messages_skipped,
            "uniqueSendersFound": len(result.senders),
            "nextPageToken": result.next_page_token,
            "hasMore": result.next_page_token is not None,
            "savedToDb": payload.save_to_db,
        },
        "message": (
            f"Found {len(result.senders)} unique senders "
            f"from {result.messages_processed} messages"
        ),
    }


@router.get("/senders")
def list_senders(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    sort_by: str = Query("emailCount", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder", pattern="^(asc|desc)$"),
    search: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if sort_by not in SENDER_SORT_FIELDS:
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            f"Invalid sortBy: {sort_by}",
            code="INVALID_SORT",
            extra={"allowed": list(SENDER_SORT_FIELDS)},
        )

    repo = EmailSenderRepository(db)
    senders = repo.find_all_by_user(
        current_user.id,
        search=search,
        sort_by=SENDER_SORT_FIELDS[sort_by],
        sort_order=sort_order,
        limit=limit,
        offset=offset,
    )
    total = repo.count_by_user(current_user.id, search=search)

    return {
        "success": True,
        "data": {
            "senders": [SenderOut.model_validate(s) for s in senders],
            "total": total,
            "limit": limit,
            "offset": offset,
            "hasMore": total > offset + limit,
        },
    }


# Declared before /senders/{sender_id}/... so "unverified" is not parsed as an id
@router.get("/senders/unverified")
def list_unverified_senders(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Senders with at least one message failing SPF or DKIM."""
    repo = EmailSenderRepository(db)
    senders = repo.find_all_by_user(current_user.id, verified=False, limit=500)
    return {
        "success": True,
        "data": {
            "senders": [SenderOut.model_validate(s) for s in senders],
            "total": repo.count_by_user(current_user.id, verified=False),
        },
    }


@router.post("/senders/bulk-delete")
async def bulk_delete_senders(
    request: BulkDeleteSendersRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Delete every message from several senders, one sender at a time.

    Unknown or foreign sender ids are skipped. A sender whose messages
    cannot be listed is logged and left in place; the others still go.
    """
    gmail = await _require_gmail(current_user, db)
    repo = EmailSenderRepository(db)

    deleted = 0
    failed = 0
    skipped = []
    for sender_id in request.sender_ids:
        sender = repo.find_by_id(sender_id)
        if sender is None or sender.user_id != current_user.id:
            logger.warning(f"Bulk delete skipped sender {sender_id}: not found")
            skipped.append(sender_id)
            continue

        try:
            sender_deleted, sender_failed = await sender_service.delete_sender_emails(
                gmail, sender.sender_email
            )
        except SenderServiceError as exc:
            logger.error(f"Bulk delete failed for sender {sender_id}: {exc.message}")
            skipped.append(sender_id)
            continue

        deleted += sender_deleted
        failed += sender_failed
        repo.delete_by_id(sender_id)

    logger.info(
        f"Bulk delete finished for user {current_user.id}",
        extra={"deleted": deleted, "failed": failed, "skipped": len(skipped)},
    )
    return {
        "success": True,
        "data": {"deleted": deleted, "failed": failed, "skippedSenderIds": skipped},
        "message": f"Deleted {deleted} emails from {len(request.sender_ids) - len(skipped)} senders",
    }


@router.delete("/senders/{sender_id}")
async def delete_sender(
    sender_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Permanently delete every message from the sender, then the sender row."""
    sender = _owned_sender(sender_id, current_user, db)
    gmail = await _require_gmail(current_user, db)

    sender_email = sender.sender_email
    deleted, failed = await sender_service.delete_sender_emails(gmail, sender_email)
    EmailSenderRepository(db).delete_by_id(sender_id)

    return {
        "success": True,
        "data": {"deleted": deleted, "failed": failed},
        "message": f"Deleted {deleted} emails from {sender_email}",
    }


@router.post("/senders/{sender_id}/unsubscribe")
def unsubscribe_sender(
    sender_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Mark the sender as unsubscribed and hand back its unsubscribe link.

    The link itself is opened by the user (it usually needs a browser).
    """
    sender = _owned_sender(sender_id, current_user, db)
    if not sender.has_unsubscribe or not sender.unsubscribe_link:
        raise ApiError(
            status.HTTP_400_BAD_REQUEST,
            "This sender does not provide an unsubscribe option",
            code="NO_UNSUBSCRIBE_LINK",
        )

    sender = EmailSenderRepository(db).mark_as_unsubscribed(sender)
    return {
        "success": True,
        "data": {
            "unsubscribeLink": sender.unsubscribe_link,
            "sender": SenderOut.model_validate(sender),
        },
        "message": (
            f"Marked {sender.sender_email} as unsubscribed. "
            "Please visit the unsubscribe link to complete."
        ),
    }
