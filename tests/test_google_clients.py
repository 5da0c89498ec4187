"""
Tests for the Google REST API clients.

HTTP is stubbed at httpx.AsyncClient.request, so these cover:
- Status-code mapping to APIError / ScopeNotGrantedError
- Drive file and permission pagination
- Gmail metadata parsing and batch delete limits
- Directory roster pagination
- validate_access
"""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from app.environments.base import APIError, ScopeNotGrantedError
from app.environments.google.directory import GoogleDirectoryClient
from app.environments.google.drive import GoogleDriveClient, SPREADSHEET_QUERY
from app.environments.google.gmail import GoogleGmailClient, MAX_BATCH_DELETE


def stub_http(*responses):
    """Patch httpx so successive requests return the given responses."""
    return patch.object(httpx.AsyncClient, "request", new=AsyncMock(side_effect=list(responses)))


class TestErrorMapping:

    @pytest.mark.asyncio
    async def test_unauthorized(self):
        with stub_http(httpx.Response(401, text="expired")):
            with pytest.raises(APIError) as exc_info:
                await GoogleDriveClient("token").list_files(SPREADSHEET_QUERY)

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_missing_scope(self):
        with stub_http(httpx.Response(403, text="Request had insufficient authentication scopes.")):
            with pytest.raises(ScopeNotGrantedError) as exc_info:
                await GoogleDriveClient("token").list_files(SPREADSHEET_QUERY)

        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_forbidden(self):
        with stub_http(httpx.Response(403, text="Not Authorized to access this resource/api")):
            with pytest.raises(APIError) as exc_info:
                await GoogleDirectoryClient("token").list_users()

        assert exc_info.value.status_code == 403
        assert not isinstance(exc_info.value, ScopeNotGrantedError)

    @pytest.mark.asyncio
    async def test_server_error_keeps_status(self):
        with stub_http(httpx.Response(500, text="backend error")):
            with pytest.raises(APIError) as exc_info:
                await GoogleGmailClient("token").get_profile()

        assert exc_info.value.status_code == 500
        assert "backend error" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_network_error(self):
        request = httpx.Request("GET", "https://www.googleapis.com/drive/v3/files")
        with stub_http(httpx.ConnectError("connection refused", request=request)):
            with pytest.raises(APIError) as exc_info:
                await GoogleDriveClient("token").list_files(SPREADSHEET_QUERY)

        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_bearer_header(self):
        with stub_http(httpx.Response(200, json={"files": []})) as request:
            await GoogleDriveClient("ya29.token").list_files(SPREADSHEET_QUERY)

        assert request.await_args.kwargs["headers"]["Authorization"] == "Bearer ya29.token"


class TestDriveClient:

    @pytest.mark.asyncio
    async def test_list_files_params(self):
        with stub_http(httpx.Response(200, json={"files": [{"id": "a", "name": "Budget"}]})) as request:
            page = await GoogleDriveClient("token").list_files(SPREADSHEET_QUERY, page_token="next")

        params = request.await_args.kwargs["params"]
        assert params["q"] == "mimeType='application/vnd.google-apps.spreadsheet'"
        assert params["pageSize"] == 1000
        assert params["pageToken"] == "next"
        assert params["includeItemsFromAllDrives"] == "true"
        assert [f.name for f in page.files] == ["Budget"]
        assert page.next_page_token is None

    @pytest.mark.asyncio
    async def test_iter_file_pages_follows_tokens(self):
        with stub_http(
            httpx.Response(200, json={"files": [{"id": "a"}], "nextPageToken": "t1"}),
            httpx.Response(200, json={"files": [{"id": "b"}], "nextPageToken": "t2"}),
            httpx.Response(200, json={"files": [{"id": "c"}]}),
        ) as request:
            pages = [page async for page in GoogleDriveClient("token").iter_file_pages(SPREADSHEET_QUERY)]

        assert [[f.id for f in page.files] for page in pages] == [["a"], ["b"], ["c"]]
        assert [call.kwargs["params"].get("pageToken") for call in request.await_args_list] == [
            None,
            "t1",
            "t2",
        ]

    @pytest.mark.asyncio
    async def test_get_file(self):
        body = {
            "id": "abc",
            "name": "Payroll",
            "owners": [{"emailAddress": "owner@acme.com"}],
            "modifiedTime": "2024-06-01T08:30:00.000Z",
            "permissions": [{"id": "anyoneWithLink", "type": "anyone", "role": "reader"}],
        }
        with stub_http(httpx.Response(200, json=body)) as request:
            drive_file = await GoogleDriveClient("token").get_file("abc")

        assert request.await_args.kwargs["url"].endswith("/files/abc")
        assert drive_file.owners[0].email_address == "owner@acme.com"
        assert drive_file.modified_time.year == 2024
        assert drive_file.permissions[0].type == "anyone"

    @pytest.mark.asyncio
    async def test_list_permissions_paginates(self):
        with stub_http(
            httpx.Response(200, json={
                "permissions": [{"id": "p1", "type": "user", "emailAddress": "a@x.com"}],
                "nextPageToken": "more",
            }),
            httpx.Response(200, json={"permissions": [{"id": "p2", "type": "domain", "domain": "x.com"}]}),
        ):
            permissions = await GoogleDriveClient("token").list_permissions("abc")

        assert [p.id for p in permissions] == ["p1", "p2"]
        assert permissions[0].email_address == "a@x.com"
        assert permissions[1].domain == "x.com"


class TestGmailClient:

    @pytest.mark.asyncio
    async def test_list_message_ids(self):
        body = {"messages": [{"id": "m1"}, {"id": "m2"}], "nextPageToken": "n", "resultSizeEstimate": 40}
        with stub_http(httpx.Response(200, json=body)) as request:
            page = await GoogleGmailClient("token").list_message_ids(query="in:inbox", max_results=5000)

        assert page.ids == ["m1", "m2"]
        assert page.next_page_token == "n"
        assert request.await_args.kwargs["params"] == {"maxResults": 500, "q": "in:inbox"}

    @pytest.mark.asyncio
    async def test_message_metadata(self):
        body = {
            "id": "m1",
            "threadId": "t1",
            "internalDate": "1700000000000",
            "payload": {
                "headers": [
                    {"name": "From", "value": "News <news@shop.com>"},
                    {"name": "List-Unsubscribe", "value": "<https://shop.com/u>"},
                ],
                "parts": [{"mimeType": "text/plain"}, {"filename": "invoice.pdf"}],
            },
        }
        with stub_http(httpx.Response(200, json=body)) as request:
            message = await GoogleGmailClient("token").get_message_metadata("m1")

        assert ("format", "metadata") in request.await_args.kwargs["params"]
        assert message.header("from") == "News <news@shop.com>"
        assert message.internal_date == 1700000000000
        assert message.has_attachments is True

    @pytest.mark.asyncio
    async def test_batch_delete(self):
        with stub_http(httpx.Response(204)) as request:
            await GoogleGmailClient("token").batch_delete(["m1", "m2"])

        assert request.await_args.kwargs["method"] == "POST"
        assert request.await_args.kwargs["json"] == {"ids": ["m1", "m2"]}

    @pytest.mark.asyncio
    async def test_batch_delete_limits(self):
        with stub_http() as request:
            await GoogleGmailClient("token").batch_delete([])
            with pytest.raises(ValueError):
                await GoogleGmailClient("token").batch_delete(["m"] * (MAX_BATCH_DELETE + 1))

        request.assert_not_awaited()


class TestDirectoryClient:

    @pytest.mark.asyncio
    async def test_list_all_users(self):
        with stub_http(
            httpx.Response(200, json={
                "users": [{
                    "primaryEmail": "jane@acme.com",
                    "name": {"fullName": "Jane Doe"},
                    "isAdmin": True,
                    "lastLoginTime": "1970-01-01T00:00:00.000Z",
                }],
                "nextPageToken": "p2",
            }),
            httpx.Response(200, json={"users": [{"primaryEmail": "bob@acme.com"}]}),
        ) as request:
            users = await GoogleDirectoryClient("token").list_all_users()

        assert [u.primary_email for u in users] == ["jane@acme.com", "bob@acme.com"]
        assert users[0].full_name == "Jane Doe"
        assert users[0].last_login_time is None
        assert request.await_args_list[0].kwargs["params"]["customer"] == "my_customer"


class TestValidateAccess:

    @pytest.mark.asyncio
    async def test_valid(self):
        with stub_http(httpx.Response(200, json={"emailAddress": "me@x.com"})):
            assert await GoogleGmailClient("token").validate_access() is True

    @pytest.mark.asyncio
    async def test_invalid(self):
        with stub_http(httpx.Response(401, text="expired")):
            assert await GoogleDriveClient("token").validate_access() is False
