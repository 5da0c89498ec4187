"""Gmail v1 - sender analysis and cleanup."""

from app.environments.google.gmail.client import (
    GoogleGmailClient,
    DEFAULT_METADATA_HEADERS,
    MAX_BATCH_DELETE,
    MAX_LIST_RESULTS,
)
from app.environments.google.gmail.headers import (
    authentication_failed,
    parse_from_header,
    parse_message_date,
    parse_unsubscribe_link,
)
from app.environments.google.gmail.schemas import GmailMessage, GmailProfile, MessageIdPage

__all__ = [
    "GoogleGmailClient",
    "DEFAULT_METADATA_HEADERS",
    "MAX_BATCH_DELETE",
    "MAX_LIST_RESULTS",
    "authentication_failed",
    "parse_from_header",
    "parse_message_date",
    "parse_unsubscribe_link",
    "GmailMessage",
    "GmailProfile",
    "MessageIdPage",
]
