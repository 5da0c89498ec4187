"""
Sender Service - groups a mailbox by sender and cleans senders out.

fetch_senders() reads one page of messages (up to 500) and aggregates
their metadata per lower-cased sender address:

    email_count        messages from the sender in this page
    attachment_count   of those, messages with an attachment part
    first/last date    earliest / latest Date header (internalDate fallback)
    sender_name        first non-empty display name
    unsubscribe_link   first List-Unsubscribe target (http(s) before mailto)
    is_verified        False once any message fails SPF or DKIM

A message whose metadata cannot be fetched is logged and skipped; the rest
of the page is still aggregated.

delete_sender_emails() finds every message from a sender (all pages) and
deletes them in batchDelete chunks of 1000. A chunk that fails is counted
as failed and the remaining chunks are still attempted.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from app.environments.base import APIError
from app.environments.google.gmail import (
    GmailMessage,
    GoogleGmailClient,
    MAX_BATCH_DELETE,
    MAX_LIST_RESULTS,
    authentication_failed,
    parse_from_header,
    parse_message_date,
    parse_unsubscribe_link,
)
from app.models.email_sender import EmailSender
from app.models.oauth_credential import PROVIDER_GMAIL
from app.repositories.email_sender import EmailSenderRepository
from app.repositories.oauth_credential import OAuthCredentialRepository
from app.services.credential_service import credential_service
from app.services.errors import SenderServiceError
from app.services.oauth_token_service import get_gmail_oauth_service


logger = logging.getLogger("shenv.services.senders")

DEFAULT_QUERY = "in:inbox"


# ---------------------------------------------------------------------------
# RESULT DATACLASSES
# ---------------------------------------------------------------------------

@dataclass
class SenderAggregate:
    sender_email: str
    sender_name: Optional[str] = None
    email_count: int = 0
    attachment_count: int = 0
    first_email_date: Optional[datetime] = None
    last_email_date: Optional[datetime] = None
    unsubscribe_link: Optional[str] = None
    is_verified: bool = True

    @property
    def has_unsubscribe(self) -> bool:
        return bool(self.unsubscribe_link)

    def add(self, message: GmailMessage, sender_name: Optional[str]) -> None:
        self.email_count += 1
        if message.has_attachments:
            self.attachment_count += 1

        if not self.sender_name and sender_name:
            self.sender_name = sender_name

        sent_at = parse_message_date(message.header("Date"), message.internal_date)
        if sent_at is not None:
            if self.first_email_date is None or sent_at < self.first_email_date:
                self.first_email_date = sent_at
            if self.last_email_date is None or sent_at > self.last_email_date:
                self.last_email_date = sent_at

        if not self.unsubscribe_link:
            self.unsubscribe_link = parse_unsubscribe_link(message.header("List-Unsubscribe"))

        if authentication_failed(message.header("Authentication-Results")):
            self.is_verified = False

    def to_record(self) -> dict:
        return {
            "sender_email": self.sender_email,
            "sender_name": self.sender_name,
            "email_count": self.email_count,
            "attachment_count": self.attachment_count,
            "first_email_date": self.first_email_date,
            "last_email_date": self.last_email_date,
            "unsubscribe_link": self.unsubscribe_link,
            "is_verified": self.is_verified,
        }


@dataclass
class SenderFetchResult:
    senders: List[SenderAggregate] = field(default_factory=list)
    messages_processed: int = 0
    messages_skipped: int = 0
    next_page_token: Optional[str] = None


# ---------------------------------------------------------------------------
# SERVICE
# ---------------------------------------------------------------------------

class SenderService:

    async def get_gmail_client(self, user_id: int, db: Session) -> Optional[GoogleGmailClient]:
        """Gmail client for the user's stored tokens, or None when Gmail is not connected."""
        if not OAuthCredentialRepository(db).has_tokens(user_id, PROVIDER_GMAIL):
            return None
        token = await credential_service.get_valid_access_token(
            user_id, PROVIDER_GMAIL, get_gmail_oauth_service(), db
        )
        return GoogleGmailClient(access_token=token)

    async def fetch_senders(
        self,
        gmail_client: GoogleGmailClient,
        max_messages: int = MAX_LIST_RESULTS,
        page_token: Optional[str] = None,
        query: str = DEFAULT_QUERY,
    ) -> SenderFetchResult:
        """
        Aggregate one page of messages by sender, largest senders first.

        Raises:
            SenderServiceError: If the message listing itself fails
        """
        try:
            page = await gmail_client.list_message_ids(
                query=query, page_token=page_token, max_results=max_messages
            )
        except APIError as exc:
            raise SenderServiceError(f"Failed to list Gmail messages: {exc}") from exc

        aggregates: Dict[str, SenderAggregate] = {}
        processed = 0
        skipped = 0

        for message_id in page.ids:
            try:
                message = await gmail_client.get_message_metadata(message_id)
            except APIError as exc:
                logger.warning(f"Skipping message {message_id}: {exc}")
                skipped += 1
                continue

            processed += 1
            sender_email, sender_name = parse_from_header(message.header("From") or "")
            if not sender_email:
                continue

            aggregate = aggregates.get(sender_email)
            if aggregate is None:
                aggregate = aggregates[sender_email] = SenderAggregate(sender_email=sender_email)
            aggregate.add(message, sender_name)

        senders = sorted(aggregates.values(), key=lambda s: s.email_count, reverse=True)

        logger.info(
            f"Aggregated {processed} messages into {len(senders)} senders",
            extra={"skipped": skipped, "has_more": page.next_page_token is not None},
        )

        return SenderFetchResult(
            senders=senders,
            messages_processed=processed,
            messages_skipped=skipped,
            next_page_token=page.next_page_token,
        )

    def save_senders(
        self,
        user_id: int,
        senders: List[SenderAggregate],
        db: Session,
    ) -> List[EmailSender]:
        repo = EmailSenderRepository(db)
        try:
            return [repo.upsert(user_id, sender.to_record()) for sender in senders]
        except Exception as exc:
            raise SenderServiceError(f"Failed to save senders: {exc}") from exc

    async def list_sender_message_ids(
        self,
        gmail_client: GoogleGmailClient,
        sender_email: str,
    ) -> List[str]:
        """Every message id from `sender_email`, following pagination."""
        ids: List[str] = []
        page_token: Optional[str] = None
        query = f"from:{sender_email}"

        while True:
            page = await gmail_client.list_message_ids(query=query, page_token=page_token)
            ids.extend(page.ids)
            page_token = page.next_page_token
            if not page_token:
                break

        return ids

    async def delete_sender_emails(
        self,
        gmail_client: GoogleGmailClient,
        sender_email: str,
    ) -> Tuple[int, int]:
        """
        Permanently delete every message from a sender.

        Returns:
            (deleted, failed) message counts

        Raises:
            SenderServiceError: If the messages cannot be listed
        """
        try:
            ids = await self.list_sender_message_ids(gmail_client, sender_email)
        except APIError as exc:
            raise SenderServiceError(f"Failed to list messages from {sender_email}: {exc}") from exc

        deleted = 0
        failed = 0
        for start in range(0, len(ids), MAX_BATCH_DELETE):
            chunk = ids[start:start + MAX_BATCH_DELETE]
            try:
                await gmail_client.batch_delete(chunk)
                deleted += len(chunk)
            except APIError as exc:
                logger.error(f"Batch delete of {len(chunk)} messages failed: {exc}")
                failed += len(chunk)

        logger.info(
            f"Deleted messages from {sender_email}",
            extra={"deleted": deleted, "failed": failed},
        )
        return deleted, failed


sender_service = SenderService()
