"""Timezone-aware UTC timestamps.

Used for column defaults and lifecycle stamps (sunset/discontinued dates)
instead of the deprecated datetime.utcnow().

Usage:
    from src.utils.datetime_utils import utc_now

    created_at = Column(DateTime, default=utc_now)
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)
