"""
Admin SDK Directory Schemas - workspace user resources.

Reference: https://developers.google.com/admin-sdk/directory/reference/rest/v1/users
"""

from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field, field_validator


class DirectoryUserName(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    full_name: Optional[str] = Field(None, alias="fullName")


class DirectoryUser(BaseModel):
    """One workspace account."""
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    primary_email: str = Field(..., alias="primaryEmail")
    name: Optional[DirectoryUserName] = None
    is_admin: bool = Field(False, alias="isAdmin")
    suspended: bool = False
    creation_time: Optional[datetime] = Field(None, alias="creationTime")
    last_login_time: Optional[datetime] = Field(None, alias="lastLoginTime")

    @field_validator("last_login_time", mode="before")
    @classmethod
    def _never_logged_in(cls, value):
        # Directory reports accounts that never signed in as the epoch
        if isinstance(value, str) and value.startswith("1970-01-01"):
            return None
        return value

    @property
    def full_name(self) -> Optional[str]:
        return self.name.full_name if self.name else None


class DirectoryUserList(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    users: List[DirectoryUser] = Field(default_factory=list)
    next_page_token: Optional[str] = Field(None, alias="nextPageToken")
