"""Timestamp helpers for log entries."""
from __future__ import annotations

from datetime import datetime, timezone


def format_timestamp(value: datetime) -> str:
    """Render a datetime as UTC ISO-8601 with millisecond precision and a ``Z`` suffix."""
    dt = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def utc_now_iso() -> str:
    return format_timestamp(datetime.now(timezone.utc))
