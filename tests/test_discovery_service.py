"""
Tests for spreadsheet discovery and workspace roster sync.

These tests verify:
- Pagination is followed in order and results are flattened
- Missing Drive fields get their defaults
- Sheets and permissions are upserted, vanished permissions pruned
- A failure mid-way leaves earlier items stored
- Client resolution (service account, OAuth, none)
- Directory 403 gets the delegation explanation
"""

import json

import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

from app.environments.base import APIError
from app.environments.google.directory import DirectoryUser
from app.environments.google.drive import DriveFile, DriveFileList
from app.models.oauth_credential import OAuthCredential
from app.models.permission import Permission
from app.models.sheet import Sheet
from app.models.workspace_user import WorkspaceUser
from app.repositories.permission import PermissionRepository
from app.services.discovery_service import (
    DEFAULT_OWNER_EMAIL,
    DEFAULT_SHEET_NAME,
    DiscoveryService,
    normalize_file,
)
from app.services.credential_service import credential_service
from app.services.errors import DiscoveryError
from app.services.workspace_service import DELEGATION_HELP, WorkspaceService


BAD_KEY_SERVICE_ACCOUNT = {
    "type": "service_account",
    "project_id": "shenv-test",
    "private_key": "not-a-pem-key",
    "client_email": "scanner@shenv-test.iam.gserviceaccount.com",
    "token_uri": "https://oauth2.googleapis.com/token",
}


def drive_file(file_id, permissions=None, **extra):
    data = {
        "id": file_id,
        "name": f"Sheet {file_id}",
        "webViewLink": f"https://docs.google.com/spreadsheets/d/{file_id}/edit",
        "owners": [{"emailAddress": "owner@acme.com"}],
        "createdTime": "2024-01-15T10:00:00.000Z",
        "modifiedTime": "2024-06-01T08:30:00.000Z",
        "permissions": permissions or [],
    }
    data.update(extra)
    return data


class FakeDriveClient:
    """Serves pre-built pages; optionally fails on a given page number."""

    def __init__(self, pages, fail_on_page=None):
        self.pages = [DriveFileList.model_validate({"files": files}) for files in pages]
        self.fail_on_page = fail_on_page
        self.queries = []

    async def iter_file_pages(self, query):
        self.queries.append(query)
        for number, page in enumerate(self.pages, start=1):
            if number == self.fail_on_page:
                raise APIError("Drive unavailable", status_code=500)
            yield page


# ---------------------------------------------------------------------------
# NORMALIZATION
# ---------------------------------------------------------------------------

class TestNormalizeFile:
    """Tests for normalize_file()."""

    def test_full_file(self):
        sheet = normalize_file(DriveFile.model_validate(drive_file(
            "abc",
            permissions=[{"id": "p1", "emailAddress": "a@acme.com", "role": "writer", "type": "user"}],
        )))

        assert sheet.external_id == "abc"
        assert sheet.owner_email == "owner@acme.com"
        assert sheet.url.endswith("/abc/edit")
        assert sheet.last_modified_at == datetime(2024, 6, 1, 8, 30, tzinfo=timezone.utc)
        assert sheet.permission_count == 1
        assert sheet.permissions[0].role == "writer"

    def test_missing_fields_get_defaults(self):
        """Name, owner, url, dates and permission fields all fall back."""
        now = datetime(2025, 1, 1, tzinfo=timezone.utc)
        file = DriveFile.model_validate({"id": "bare", "permissions": [{"id": "p1"}]})

        sheet = normalize_file(file, now=now)

        assert sheet.name == DEFAULT_SHEET_NAME
        assert sheet.owner_email == DEFAULT_OWNER_EMAIL
        assert sheet.url == "https://docs.google.com/spreadsheets/d/bare"
        assert sheet.created_at == now
        assert sheet.last_modified_at == now
        assert sheet.permissions[0].role == "reader"
        assert sheet.permissions[0].type == "user"
        assert sheet.permissions[0].email is None

    def test_permission_without_id_gets_a_key(self):
        file = DriveFile.model_validate({"id": "f", "permissions": [{"type": "anyone"}, {}]})

        sheet = normalize_file(file)

        assert [p.external_permission_id for p in sheet.permissions] == ["anyone:0", "user:1"]


# ---------------------------------------------------------------------------
# FETCH + STORE
# ---------------------------------------------------------------------------

class TestDiscoverSheets:
    """Tests for DiscoveryService.discover_sheets()."""

    @pytest.mark.asyncio
    async def test_follows_every_page_in_order(self, db, test_user):
        """Three pages of 2, 2 and 1 files should give five sheets in order."""
        client = FakeDriveClient([
            [drive_file("a"), drive_file("b")],
            [drive_file("c"), drive_file("d")],
            [drive_file("e")],
        ])

        sheets = await DiscoveryService().fetch_sheets(client)

        assert [s.external_id for s in sheets] == ["a", "b", "c", "d", "e"]
        assert client.queries == ["mimeType='application/vnd.google-apps.spreadsheet'"]

    @pytest.mark.asyncio
    async def test_stores_sheets_and_permissions(self, db, test_user):
        client = FakeDriveClient([[
            drive_file("a", permissions=[
                {"id": "anyoneWithLink", "type": "anyone", "role": "reader"},
                {"id": "p1", "type": "user", "role": "writer", "emailAddress": "x@y.com"},
            ]),
            drive_file("b"),
        ]])

        result = await DiscoveryService().discover_sheets(test_user.id, client, db)

        assert result.discovered == 2
        assert result.stored == 2

        sheet = db.query(Sheet).filter(Sheet.external_id == "a").one()
        assert sheet.user_id == test_user.id
        assert sheet.permission_count == 2
        assert db.query(Permission).filter(Permission.sheet_id == sheet.id).count() == 2

    @pytest.mark.asyncio
    async def test_grants_without_ids_are_stored_separately(self, db, test_user):
        client = FakeDriveClient([[
            drive_file("a", permissions=[
                {"type": "user", "role": "writer", "emailAddress": "X@y.com"},
                {"type": "user", "role": "reader", "emailAddress": "z@y.com"},
                {"type": "domain", "role": "reader", "domain": "y.com"},
            ]),
        ]])

        await DiscoveryService().discover_sheets(test_user.id, client, db)

        sheet = db.query(Sheet).one()
        stored = db.query(Permission).filter(Permission.sheet_id == sheet.id).all()
        assert len(stored) == sheet.permission_count == 3
        assert {p.external_permission_id for p in stored} == {
            "user:x@y.com",
            "user:z@y.com",
            "domain:y.com",
        }

    @pytest.mark.asyncio
    async def test_rediscovery_updates_and_prunes(self, db, test_user):
        """A second pass updates the sheet and drops permissions no longer present."""
        first = FakeDriveClient([[drive_file("a", permissions=[
            {"id": "p1", "type": "user", "role": "reader", "emailAddress": "one@y.com"},
            {"id": "p2", "type": "user", "role": "reader", "emailAddress": "two@y.com"},
        ])]])
        second = FakeDriveClient([[drive_file("a", name="Renamed", permissions=[
            {"id": "p2", "type": "user", "role": "writer", "emailAddress": "two@y.com"},
        ])]])

        service = DiscoveryService()
        await service.discover_sheets(test_user.id, first, db)
        await service.discover_sheets(test_user.id, second, db)

        sheets = db.query(Sheet).all()
        assert len(sheets) == 1
        assert sheets[0].name == "Renamed"
        assert sheets[0].permission_count == 1

        permissions = db.query(Permission).all()
        assert [p.external_permission_id for p in permissions] == ["p2"]
        assert permissions[0].role == "writer"

    @pytest.mark.asyncio
    async def test_page_failure_raises_discovery_error(self, db, test_user):
        client = FakeDriveClient([[drive_file("a")], [drive_file("b")]], fail_on_page=2)

        with pytest.raises(DiscoveryError, match="Failed to discover sheets"):
            await DiscoveryService().discover_sheets(test_user.id, client, db)

        # Nothing is stored when listing fails
        assert db.query(Sheet).count() == 0

    @pytest.mark.asyncio
    async def test_store_failure_keeps_earlier_items(self, db, test_user):
        """Sheets stored before the failing item stay committed."""
        client = FakeDriveClient([[
            drive_file("a", permissions=[{"id": "ok", "type": "anyone", "role": "reader"}]),
            drive_file("b", permissions=[{"id": "boom", "type": "anyone", "role": "reader"}]),
            drive_file("c"),
        ]])
        original_upsert = PermissionRepository.upsert

        def failing_upsert(self, sheet_id, data):
            if data["external_permission_id"] == "boom":
                raise RuntimeError("constraint violated")
            return original_upsert(self, sheet_id, data)

        with patch.object(PermissionRepository, "upsert", failing_upsert):
            with pytest.raises(DiscoveryError, match="constraint violated"):
                await DiscoveryService().discover_sheets(test_user.id, client, db)

        stored = {s.external_id for s in db.query(Sheet).all()}
        assert "a" in stored
        assert "c" not in stored
        assert db.query(Permission).count() == 1

    @pytest.mark.asyncio
    async def test_discover_and_analyze_scores(self, db, test_user):
        recent = (datetime.now(timezone.utc) - timedelta(days=2)).isoformat()
        client = FakeDriveClient([[drive_file("a", modifiedTime=recent, permissions=[
            {"id": "anyoneWithLink", "type": "anyone", "role": "reader"},
        ])]])

        result, analysis = await DiscoveryService().discover_and_analyze(test_user.id, client, db)

        assert result.stored == 1
        assert analysis.analyzed == 1
        # Public link + owner not on the (empty) roster
        assert db.query(Sheet).one().risk_score == 60


# ---------------------------------------------------------------------------
# CLIENT RESOLUTION
# ---------------------------------------------------------------------------

class TestGetDriveClient:
    """Tests for DiscoveryService.get_drive_client()."""

    @pytest.mark.asyncio
    async def test_no_credentials_returns_none(self, db, test_user):
        assert await DiscoveryService().get_drive_client(test_user.id, db) is None

    @pytest.mark.asyncio
    async def test_uses_drive_oauth_token(self, db, test_user):
        db.add(OAuthCredential(
            user_id=test_user.id,
            provider="google_drive",
            access_token="enc",
            refresh_token="enc",
            expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
        ))
        db.commit()

        with patch(
            "app.services.discovery_service.credential_service.get_valid_access_token",
            new=AsyncMock(return_value="drive-token"),
        ):
            client = await DiscoveryService().get_drive_client(test_user.id, db)

        assert client.access_token == "drive-token"

    @pytest.mark.asyncio
    async def test_service_account_wins(self, db, test_user):
        provider = AsyncMock()
        provider.get_access_token.return_value = "sa-token"

        with patch(
            "app.services.discovery_service.credential_service.get_service_account",
            return_value={"client_email": "sa@p.iam.gserviceaccount.com"},
        ), patch(
            "app.services.discovery_service.ServiceAccountTokenProvider",
            return_value=provider,
        ) as provider_cls:
            client = await DiscoveryService().get_drive_client(
                test_user.id, db, subject="admin@acme.com"
            )

        assert client.access_token == "sa-token"
        assert provider_cls.call_args.kwargs["subject"] == "admin@acme.com"

    @pytest.mark.asyncio
    async def test_unloadable_service_account_key(self, db, test_user):
        """A stored key that passes field validation but is not a PEM key."""
        credential_service.store_platform_credentials(
            test_user.id, "google_workspace", json.dumps(BAD_KEY_SERVICE_ACCOUNT), "service_account", db
        )

        with pytest.raises(DiscoveryError, match="Failed to discover sheets"):
            await DiscoveryService().get_drive_client(test_user.id, db)


# ---------------------------------------------------------------------------
# WORKSPACE ROSTER
# ---------------------------------------------------------------------------

class TestWorkspaceService:
    """Tests for roster discovery."""

    @pytest.mark.asyncio
    async def test_forbidden_explains_delegation(self):
        directory = AsyncMock()
        directory.list_all_users.side_effect = APIError("Forbidden", status_code=403)

        with pytest.raises(DiscoveryError) as exc_info:
            await WorkspaceService().discover_workspace_users(directory)

        assert exc_info.value.message == DELEGATION_HELP

    @pytest.mark.asyncio
    async def test_other_errors_are_wrapped(self):
        directory = AsyncMock()
        directory.list_all_users.side_effect = APIError("Server error", status_code=500)

        with pytest.raises(DiscoveryError, match="Failed to discover workspace users"):
            await WorkspaceService().discover_workspace_users(directory)

    def test_sync_upserts_roster(self, db, business_user):
        users = [
            DirectoryUser.model_validate({
                "primaryEmail": "Jane@Acme.com",
                "name": {"fullName": "Jane Doe"},
                "isAdmin": True,
                "lastLoginTime": "1970-01-01T00:00:00.000Z",
            }),
            DirectoryUser.model_validate({"primaryEmail": "bob@acme.com", "suspended": True}),
        ]

        service = WorkspaceService()
        assert service.sync_workspace_users(business_user.id, users, db) == 2
        # Idempotent on (user, email)
        assert service.sync_workspace_users(business_user.id, users, db) == 2

        members = db.query(WorkspaceUser).order_by(WorkspaceUser.email).all()
        assert [m.email for m in members] == ["bob@acme.com", "jane@acme.com"]
        assert members[1].full_name == "Jane Doe"
        assert members[1].is_admin is True
        assert members[1].last_login_at is None
        assert members[0].is_suspended is True
