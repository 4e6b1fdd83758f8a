"""Date helpers for event text and time windows."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from showsync.calendar_providers.base import EventWindow

def ensure_aware(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)

def format_show_datetime(dt: datetime, time_zone: str) -> str:
    """Human-readable date and time in the calendar's timezone.

    >>> format_show_datetime(datetime(2024, 6, 1, 23, 0, tzinfo=timezone.utc), "America/Sao_Paulo")
    'Saturday, June 01, 2024 at 08:00 PM'
    """
    local = ensure_aware(dt).astimezone(ZoneInfo(time_zone))
    return local.strftime("%A, %B %d, %Y at %I:%M %p")

def window_from_now(now: datetime, days: int) -> EventWindow:
    return EventWindow(start=now, end=now + timedelta(days=days))
