"""
Gmail schemas - sender analysis and cleanup.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from app.environments.google.gmail import MAX_LIST_RESULTS
from app.schemas.common import CamelModel


class FetchSendersRequest(CamelModel):
    """
    Schema for POST /api/gmail/senders/fetch.

    Example request body:
    {
        "maxMessages": 500,
        "pageToken": null,
        "saveToDb": true
    }

    Pass the previous response's nextPageToken to continue through the inbox.
    """
    max_messages: int = Field(MAX_LIST_RESULTS, ge=1, le=MAX_LIST_RESULTS)
    page_token: Optional[str] = None
    save_to_db: bool = True


class BulkDeleteSendersRequest(CamelModel):
    """
    Schema for POST /api/gmail/senders/bulk-delete.

    Example request body:
    {
        "senderIds": [12, 15, 31]
    }
    """
    sender_ids: List[int] = Field(..., min_length=1)


class SenderOut(CamelModel):
    """A stored sender aggregate."""
    id: int
    sender_email: str
    sender_name: Optional[str] = None
    email_count: int
    attachment_count: int
    first_email_date: Optional[datetime] = None
    last_email_date: Optional[datetime] = None
    unsubscribe_link: Optional[str] = None
    has_unsubscribe: bool
    is_verified: bool
    is_unsubscribed: bool
    unsubscribed_at: Optional[datetime] = None
    last_synced_at: Optional[datetime] = None


class SenderSummary(CamelModel):
    """A sender aggregate fresh from Gmail (not necessarily stored)."""
    sender_email: str
    sender_name: Optional[str] = None
    email_count: int
    attachment_count: int
    first_email_date: Optional[datetime] = None
    last_email_date: Optional[datetime] = None
    unsubscribe_link: Optional[str] = None
    has_unsubscribe: bool
    is_verified: bool
