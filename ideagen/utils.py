"""
Small shared helpers: UTC timestamps and topic name normalization.
"""

import re
import uuid
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_timestamp(value) -> Optional[datetime]:
    """
    Parse an ISO-8601 string (Airtable uses a trailing "Z") into an aware datetime.

    Naive values are assumed to be UTC. Returns None for empty or unparseable input.
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        dt = value
    else:
        try:
            dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_timestamp(dt: Optional[datetime]) -> Optional[str]:
    """Serialize an aware datetime as ISO-8601 UTC, or None."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


_TOPIC_PREFIX = re.compile(r"^/?r/", re.IGNORECASE)


def normalize_topic_name(raw: Optional[str], default: Optional[str] = None) -> str:
    """
    Normalize a free-form topic name.

    "  r/Startups " -> "startups". Empty input falls back to `default`.

    Raises:
        ValueError: If the name is empty and no default is given.
    """
    name = (raw or "").strip()
    name = _TOPIC_PREFIX.sub("", name).strip().strip("/").lower()

    if not name:
        if default is None:
            raise ValueError("topic name is required")
        return normalize_topic_name(default)

    return name


def new_run_id() -> str:
    """Unique, sortable workflow run id, e.g. run-20240101120000-1a2b3c4d."""
    return f"run-{utc_now().strftime('%Y%m%d%H%M%S')}-{uuid.uuid4().hex[:8]}"
