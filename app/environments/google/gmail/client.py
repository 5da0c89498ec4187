"""
Gmail API Client - message listing, metadata and bulk deletion (Gmail v1).

All calls act on the authenticated mailbox ("users/me").
"""

import logging
from typing import List, Optional, Sequence

from app.environments.google.api import GoogleAPIClient
from app.environments.google.auth.schemas import GMAIL_SCOPES
from app.environments.google.gmail.schemas import (
    GmailMessage,
    GmailProfile,
    MessageIdPage,
)


logger = logging.getLogger("shenv.environments.google.gmail")


# messages.list maximum page size
MAX_LIST_RESULTS = 500

# messages.batchDelete maximum ids per call
MAX_BATCH_DELETE = 1000

DEFAULT_METADATA_HEADERS = ("From", "Date", "List-Unsubscribe", "Authentication-Results")


class GoogleGmailClient(GoogleAPIClient):
    """Gmail v1 client for the connected mailbox."""

    service_name = "gmail"
    required_scopes = GMAIL_SCOPES

    BASE_URL = "https://gmail.googleapis.com/gmail/v1/users/me"

    async def get_profile(self) -> GmailProfile:
        data = await self._make_request("GET", "/profile")
        return GmailProfile.model_validate(data)

    async def list_message_ids(
        self,
        query: Optional[str] = None,
        page_token: Optional[str] = None,
        max_results: int = MAX_LIST_RESULTS,
    ) -> MessageIdPage:
        """One page of message ids matching a Gmail search query."""
        params = {"maxResults": min(max_results, MAX_LIST_RESULTS)}
        if query:
            params["q"] = query
        if page_token:
            params["pageToken"] = page_token

        data = await self._make_request("GET", "/messages", params=params)

        return MessageIdPage(
            ids=[m["id"] for m in data.get("messages", []) if m.get("id")],
            next_page_token=data.get("nextPageToken"),
            result_size_estimate=data.get("resultSizeEstimate", 0),
        )

    async def get_message_metadata(
        self,
        message_id: str,
        headers: Sequence[str] = DEFAULT_METADATA_HEADERS,
    ) -> GmailMessage:
        """
        Fetch headers (format=metadata) of one message.

        Attachment detection uses the part tree Gmail returns with the
        metadata: any part carrying a filename counts.
        """
        params = [("format", "metadata")] + [("metadataHeaders", h) for h in headers]
        data = await self._make_request("GET", f"/messages/{message_id}", params=params)

        payload = data.get("payload") or {}

        parsed_headers = {}
        for header in payload.get("headers", []):
            name = (header.get("name") or "").lower()
            if name and name not in parsed_headers:
                parsed_headers[name] = header.get("value") or ""

        internal_date = data.get("internalDate")

        return GmailMessage(
            id=data.get("id", message_id),
            thread_id=data.get("threadId"),
            label_ids=data.get("labelIds", []),
            internal_date=int(internal_date) if internal_date else None,
            headers=parsed_headers,
            has_attachments=_has_attachment(payload),
        )

    async def batch_delete(self, message_ids: List[str]) -> None:
        """
        Permanently delete up to 1000 messages in one call.

        Raises:
            ValueError: If more than MAX_BATCH_DELETE ids are passed
        """
        if len(message_ids) > MAX_BATCH_DELETE:
            raise ValueError(f"batch_delete accepts at most {MAX_BATCH_DELETE} ids")
        if not message_ids:
            return

        await self._make_request("POST", "/messages/batchDelete", json={"ids": message_ids})
        logger.info(f"Deleted {len(message_ids)} Gmail messages")

    async def _probe(self) -> None:
        await self.get_profile()


def _has_attachment(part: dict) -> bool:
    if part.get("filename"):
        return True
    return any(_has_attachment(child) for child in part.get("parts", []) or [])
