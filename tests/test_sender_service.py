"""
Tests for Gmail sender aggregation and cleanup.

These tests verify:
- From / List-Unsubscribe / Authentication-Results / Date parsing
- Aggregation per sender, skipped messages, ordering
- Deleting a sender's messages in batchDelete chunks
"""

import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

from app.environments.base import APIError
from app.environments.google.gmail import (
    GmailMessage,
    MessageIdPage,
    authentication_failed,
    parse_from_header,
    parse_message_date,
    parse_unsubscribe_link,
)
from app.models.email_sender import EmailSender
from app.services.errors import SenderServiceError
from app.services.sender_service import SenderService


def message(message_id, sender, date=None, unsubscribe=None, auth=None, attachments=False):
    headers = {"from": sender}
    if date:
        headers["date"] = date
    if unsubscribe:
        headers["list-unsubscribe"] = unsubscribe
    if auth:
        headers["authentication-results"] = auth
    return GmailMessage(id=message_id, headers=headers, has_attachments=attachments)


def gmail_client(pages, messages):
    """A Gmail client double serving id pages and per-id metadata (or errors)."""
    client = MagicMock()
    client.list_message_ids = AsyncMock(side_effect=pages)

    async def get_metadata(message_id):
        result = messages[message_id]
        if isinstance(result, Exception):
            raise result
        return result

    client.get_message_metadata = AsyncMock(side_effect=get_metadata)
    client.batch_delete = AsyncMock()
    return client


# ---------------------------------------------------------------------------
# HEADER PARSING
# ---------------------------------------------------------------------------

class TestHeaderParsing:

    @pytest.mark.parametrize("value, expected", [
        ("Acme News <News@Acme.com>", ("news@acme.com", "Acme News")),
        ('"Doe, Jane" <jane@x.org>', ("jane@x.org", "Doe, Jane")),
        ("bob@example.com", ("bob@example.com", None)),
        ("undisclosed-recipients", (None, None)),
        ("", (None, None)),
    ])
    def test_parse_from_header(self, value, expected):
        assert parse_from_header(value) == expected

    def test_unsubscribe_prefers_https(self):
        value = "<mailto:unsub@acme.com>, <https://acme.com/unsub?id=1>"

        assert parse_unsubscribe_link(value) == "https://acme.com/unsub?id=1"

    def test_unsubscribe_mailto_fallback(self):
        assert parse_unsubscribe_link("<mailto:unsub@acme.com>") == "mailto:unsub@acme.com"

    def test_unsubscribe_missing(self):
        assert parse_unsubscribe_link(None) is None
        assert parse_unsubscribe_link("garbage") is None

    def test_authentication_failed(self):
        assert authentication_failed("mx.google.com; spf=pass; dkim=FAIL header.d=x.com")
        assert authentication_failed("spf = fail")
        assert not authentication_failed("spf=pass; dkim=pass")
        assert not authentication_failed(None)

    def test_message_date_falls_back_to_internal_date(self):
        parsed = parse_message_date("not a date", internal_date=1704189600000)

        assert parsed == datetime(2024, 1, 2, 10, 0, tzinfo=timezone.utc)

    def test_message_date_converted_to_utc(self):
        parsed = parse_message_date("Tue, 2 Jan 2024 12:00:00 +0200")

        assert parsed == datetime(2024, 1, 2, 10, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# FETCH
# ---------------------------------------------------------------------------

class TestFetchSenders:

    @pytest.mark.asyncio
    async def test_aggregates_by_sender(self):
        client = gmail_client(
            [MessageIdPage(ids=["m1", "m2", "m3", "m4"], next_page_token="next")],
            {
                "m1": message(
                    "m1", "Acme <news@acme.com>",
                    date="Mon, 1 Jan 2024 10:00:00 +0000",
                    unsubscribe="<https://acme.com/unsub>",
                    attachments=True,
                ),
                "m2": message(
                    "m2", "NEWS@acme.com",
                    date="Wed, 3 Jan 2024 10:00:00 +0000",
                    auth="spf=pass; dkim=fail",
                ),
                "m3": message("m3", "Bob <bob@x.org>", date="Tue, 2 Jan 2024 10:00:00 +0000"),
                "m4": message("m4", "undisclosed-recipients"),
            },
        )

        result = await SenderService().fetch_senders(client, max_messages=50)

        client.list_message_ids.assert_awaited_once_with(
            query="in:inbox", page_token=None, max_results=50
        )
        assert result.messages_processed == 4
        assert result.messages_skipped == 0
        assert result.next_page_token == "next"
        assert [s.sender_email for s in result.senders] == ["news@acme.com", "bob@x.org"]

        acme = result.senders[0]
        assert acme.sender_name == "Acme"
        assert acme.email_count == 2
        assert acme.attachment_count == 1
        assert acme.unsubscribe_link == "https://acme.com/unsub"
        assert acme.has_unsubscribe is True
        assert acme.is_verified is False
        assert acme.first_email_date == datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)
        assert acme.last_email_date == datetime(2024, 1, 3, 10, 0, tzinfo=timezone.utc)

        bob = result.senders[1]
        assert bob.is_verified is True
        assert bob.has_unsubscribe is False

    @pytest.mark.asyncio
    async def test_failed_message_is_skipped(self):
        client = gmail_client(
            [MessageIdPage(ids=["m1", "m2"])],
            {
                "m1": APIError("Not found", status_code=404),
                "m2": message("m2", "a@x.com"),
            },
        )

        result = await SenderService().fetch_senders(client)

        assert result.messages_processed == 1
        assert result.messages_skipped == 1
        assert result.next_page_token is None
        assert len(result.senders) == 1

    @pytest.mark.asyncio
    async def test_listing_failure(self):
        client = gmail_client([APIError("Unauthorized", status_code=401)], {})

        with pytest.raises(SenderServiceError, match="Failed to list Gmail messages"):
            await SenderService().fetch_senders(client)

    @pytest.mark.asyncio
    async def test_save_senders(self, db, test_user):
        client = gmail_client(
            [MessageIdPage(ids=["m1"])],
            {"m1": message("m1", "Acme <news@acme.com>", unsubscribe="<mailto:u@acme.com>")},
        )
        service = SenderService()
        result = await service.fetch_senders(client)

        saved = service.save_senders(test_user.id, result.senders, db)
        service.save_senders(test_user.id, result.senders, db)

        assert len(saved) == 1
        row = db.query(EmailSender).one()
        assert row.sender_email == "news@acme.com"
        assert row.email_count == 1
        assert row.has_unsubscribe is True


# ---------------------------------------------------------------------------
# DELETE
# ---------------------------------------------------------------------------

class TestDeleteSenderEmails:

    @pytest.mark.asyncio
    async def test_follows_pages_and_chunks(self):
        """2500 ids over two pages become chunks of 1000, 1000 and 500."""
        ids = [f"m{i}" for i in range(2500)]
        client = gmail_client(
            [
                MessageIdPage(ids=ids[:1500], next_page_token="p2"),
                MessageIdPage(ids=ids[1500:]),
            ],
            {},
        )

        deleted, failed = await SenderService().delete_sender_emails(client, "news@acme.com")

        assert (deleted, failed) == (2500, 0)
        assert [len(call.args[0]) for call in client.batch_delete.await_args_list] == [1000, 1000, 500]
        first_call = client.list_message_ids.await_args_list[0]
        assert first_call.kwargs["query"] == "from:news@acme.com"

    @pytest.mark.asyncio
    async def test_failed_chunk_is_counted(self):
        ids = [f"m{i}" for i in range(1200)]
        client = gmail_client([MessageIdPage(ids=ids)], {})
        client.batch_delete.side_effect = [APIError("Server error", status_code=500), None]

        deleted, failed = await SenderService().delete_sender_emails(client, "news@acme.com")

        assert (deleted, failed) == (200, 1000)
        assert client.batch_delete.await_count == 2

    @pytest.mark.asyncio
    async def test_no_messages(self):
        client = gmail_client([MessageIdPage(ids=[])], {})

        assert await SenderService().delete_sender_emails(client, "x@y.com") == (0, 0)
        client.batch_delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_listing_failure(self):
        client = gmail_client([APIError("Forbidden", status_code=403)], {})

        with pytest.raises(SenderServiceError):
            await SenderService().delete_sender_emails(client, "x@y.com")
