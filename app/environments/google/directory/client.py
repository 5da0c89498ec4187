"""
Admin SDK Directory Client - lists the users of a Google Workspace domain.

Requires a service-account token with domain-wide delegation, issued for an
admin subject, and the admin.directory.user.readonly scope.
"""

import logging
from typing import List, Optional

from app.environments.google.api import GoogleAPIClient
from app.environments.google.auth.schemas import DIRECTORY_SCOPES
from app.environments.google.directory.schemas import DirectoryUser, DirectoryUserList


logger = logging.getLogger("shenv.environments.google.directory")

# users.list maximum page size
MAX_USERS_PER_PAGE = 500


class GoogleDirectoryClient(GoogleAPIClient):
    """Admin SDK Directory v1 client scoped to the caller's own customer."""

    service_name = "directory"
    required_scopes = DIRECTORY_SCOPES

    BASE_URL = "https://admin.googleapis.com/admin/directory/v1"

    async def list_users(self, page_token: Optional[str] = None) -> DirectoryUserList:
        """One page of users (500 max), ordered by email."""
        params = {
            "customer": "my_customer",
            "maxResults": MAX_USERS_PER_PAGE,
            "orderBy": "email",
        }
        if page_token:
            params["pageToken"] = page_token

        data = await self._make_request("GET", "/users", params=params)
        return DirectoryUserList.model_validate(data)

    async def list_all_users(self) -> List[DirectoryUser]:
        """Every user of the domain, following pagination sequentially."""
        users: List[DirectoryUser] = []
        page_token: Optional[str] = None

        while True:
            page = await self.list_users(page_token)
            users.extend(page.users)
            page_token = page.next_page_token
            if not page_token:
                break

        logger.info(f"Fetched {len(users)} workspace users")
        return users

    async def _probe(self) -> None:
        await self._make_request(
            "GET", "/users", params={"customer": "my_customer", "maxResults": 1}
        )
