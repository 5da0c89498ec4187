"""
Gmail Schemas - Gmail v1 message metadata in a flattened form.

Reference: https://developers.google.com/gmail/api/reference/rest/v1/users.messages
"""

from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class GmailProfile(BaseModel):
    """users.getProfile response."""
    model_config = ConfigDict(populate_by_name=True)

    email_address: str = Field(..., alias="emailAddress")
    messages_total: int = Field(0, alias="messagesTotal")
    threads_total: int = Field(0, alias="threadsTotal")


class MessageIdPage(BaseModel):
    """One page of users.messages.list: ids only."""
    ids: List[str] = Field(default_factory=list)
    next_page_token: Optional[str] = None
    result_size_estimate: int = 0


class GmailMessage(BaseModel):
    """
    Metadata of one message.

    headers maps lower-cased header names to the first value seen, e.g.
    {"from": "Acme <news@acme.com>", "date": "Tue, 2 Jan 2024 10:00:00 +0000"}
    """
    id: str
    thread_id: Optional[str] = None
    label_ids: List[str] = Field(default_factory=list)
    internal_date: Optional[int] = None  # epoch milliseconds
    headers: Dict[str, str] = Field(default_factory=dict)
    has_attachments: bool = False

    def header(self, name: str) -> Optional[str]:
        return self.headers.get(name.lower())
