"""Absolute and relative date rendering for article timestamps.

Both functions accept the ISO-8601 strings returned by the Qiita API and
never raise: unparsable input degrades to a placeholder string.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone

INVALID_DATE = "Invalid Date"

MINUTE = 60
HOUR = 60 * MINUTE
DAY = 24 * HOUR
RELATIVE_LIMIT = 30 * DAY  # 2_592_000 seconds


def parse_timestamp(value: str) -> datetime | None:
    """Parse an ISO-8601 string into an aware datetime.

    Timestamps without an offset are taken as local time.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return datetime.fromisoformat(value.strip().replace("Z", "+00:00")).astimezone()
    except (ValueError, OverflowError, OSError):
        return None


def format_absolute(timestamp: str) -> str:
    """Render a timestamp as ``2023年5月15日 10:30`` in the local timezone."""
    parsed = parse_timestamp(timestamp)
    if parsed is None:
        return INVALID_DATE
    return f"{parsed.year}年{parsed.month}月{parsed.day}日 {parsed.hour:02d}:{parsed.minute:02d}"


def format_relative(timestamp: str, now: datetime | None = None) -> str:
    """Render how long ago a timestamp was, falling back to the absolute form.

    Future timestamps count as "just now". Anything 30 days or older is
    rendered with format_absolute.
    """
    parsed = parse_timestamp(timestamp)
    if parsed is None:
        return INVALID_DATE

    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.astimezone()

    diff = math.floor((now - parsed).total_seconds())

    if diff < MINUTE:
        return "just now"
    if diff < HOUR:
        return f"{max(diff // MINUTE, 1)} minutes ago"
    if diff < DAY:
        return f"{diff // HOUR} hours ago"
    if diff < RELATIVE_LIMIT:
        return f"{diff // DAY} days ago"
    return format_absolute(timestamp)
