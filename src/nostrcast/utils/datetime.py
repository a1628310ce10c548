"""Timezone-aware datetime helpers."""

from datetime import datetime, timezone
from email.utils import format_datetime


def now_utc() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def from_unix(timestamp: int) -> datetime:
    """Convert unix seconds to an aware UTC datetime."""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


def is_representable(timestamp: int) -> bool:
    """Whether unix seconds fall inside the range datetime can hold."""
    try:
        from_unix(timestamp)
    except (ValueError, OverflowError, OSError):
        return False
    return True


def format_rfc822(value: datetime) -> str:
    """Format a datetime the way RSS pubDate expects.

    Example:
        >>> format_rfc822(datetime(2025, 1, 5, 12, 0, tzinfo=timezone.utc))
        'Sun, 05 Jan 2025 12:00:00 GMT'
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return format_datetime(value.astimezone(timezone.utc), usegmt=True)
