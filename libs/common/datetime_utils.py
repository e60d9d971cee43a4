"""Datetime utilities for timezone-aware UTC timestamps.

Usage:
    from libs.common.datetime_utils import utc_now

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now)
"""

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_provider_timestamp(value: object) -> Optional[datetime]:
    """Parse ISO-8601 strings like Paystack's ``paid_at`` ("...Z" suffix)."""
    if not isinstance(value, str) or not value:
        return None
    try:
        return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except ValueError:
        return None
