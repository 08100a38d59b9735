from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any


Clock = Callable[[], datetime]

INSTANT_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime.

    Naive values are read as UTC, which is how the store hands back
    ``timestamptz`` columns on drivers that drop the offset.
    """
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_aware(value: Any) -> bool:
    return (
        isinstance(value, datetime)
        and value.tzinfo is not None
        and value.tzinfo.utcoffset(value) is not None
    )


def format_instant(value: datetime) -> str:
    return ensure_utc(value).strftime(INSTANT_FORMAT)


def parse_instant(text: str) -> datetime:
    cleaned = (text or "").strip()
    if not cleaned:
        raise ValueError("Empty timestamp.")
    if cleaned.endswith("Z"):
        cleaned = cleaned[:-1] + "+00:00"
    parsed = datetime.fromisoformat(cleaned)
    if not is_aware(parsed):
        raise ValueError("Timestamp must include timezone information.")
    return parsed.astimezone(timezone.utc)
