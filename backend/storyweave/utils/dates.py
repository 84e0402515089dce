from datetime import datetime, timezone
from typing import Any, Optional


def utcnow() -> datetime:
    """Current time as a naive UTC datetime (the storage convention)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC"""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Best-effort parse of a timestamp coming from NewsAPI or the oracle

    Accepts datetimes, ISO 8601 strings (with a trailing 'Z' or a space
    separator) and epoch seconds. Returns None when the value can't be read.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        return to_naive_utc(value)

    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc).replace(tzinfo=None)
        except (OverflowError, OSError, ValueError):
            return None

    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            return to_naive_utc(datetime.fromisoformat(text.replace(' ', 'T', 1)))
        except ValueError:
            return None

    return None
