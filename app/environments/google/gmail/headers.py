"""
Parsing helpers for the message headers sender analysis reads.
"""

import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional, Tuple


EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
ANGLE_ADDR_PATTERN = re.compile(r"<([^>]+)>")
UNSUBSCRIBE_ENTRY_PATTERN = re.compile(r"<([^>]+)>")
AUTH_FAIL_PATTERN = re.compile(r"\b(spf|dkim)\s*=\s*fail\b", re.IGNORECASE)


def parse_from_header(value: str) -> Tuple[Optional[str], Optional[str]]:
    """
    Split a From header into (email, display name).

    Examples:
        'Acme News <news@acme.com>'  → ('news@acme.com', 'Acme News')
        '"Doe, Jane" <JANE@x.org>'   → ('jane@x.org', 'Doe, Jane')
        'bob@example.com'            → ('bob@example.com', None)
        'undisclosed-recipients'     → (None, None)

    The email is lower-cased.
    """
    if not value:
        return None, None

    value = value.strip()
    angle = ANGLE_ADDR_PATTERN.search(value)
    if angle:
        match = EMAIL_PATTERN.search(angle.group(1))
        name = value[: angle.start()].strip().strip('"').strip() or None
    else:
        match = EMAIL_PATTERN.search(value)
        name = None

    if not match:
        return None, None
    return match.group(0).lower(), name


def parse_unsubscribe_link(value: Optional[str]) -> Optional[str]:
    """
    Pick the unsubscribe target from a List-Unsubscribe header.

    The header is a comma-separated list of <...> entries; an http(s) URL
    wins over a mailto: address.
    """
    if not value:
        return None

    entries = [entry.strip() for entry in UNSUBSCRIBE_ENTRY_PATTERN.findall(value)]
    for entry in entries:
        if entry.lower().startswith(("https://", "http://")):
            return entry
    for entry in entries:
        if entry.lower().startswith("mailto:"):
            return entry
    return None


def authentication_failed(value: Optional[str]) -> bool:
    """True when Authentication-Results reports spf=fail or dkim=fail."""
    if not value:
        return False
    return AUTH_FAIL_PATTERN.search(value) is not None


def parse_message_date(value: Optional[str], internal_date: Optional[int] = None) -> Optional[datetime]:
    """
    Parse a Date header into an aware UTC datetime, falling back to Gmail's
    internalDate (epoch ms) when the header is missing or malformed.
    """
    if value:
        try:
            parsed = parsedate_to_datetime(value)
        except (TypeError, ValueError):
            parsed = None
        if parsed is not None:
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return parsed.astimezone(timezone.utc)

    if internal_date:
        return datetime.fromtimestamp(internal_date / 1000, tz=timezone.utc)
    return None
