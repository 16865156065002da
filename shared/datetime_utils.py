"""
Date/time helpers and the injectable clock.

Services take a ``Clock`` instead of calling ``datetime.now`` directly so that
expiry and retry scheduling can be driven deterministically in tests.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Protocol


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock, always timezone-aware UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Return *value* as an aware UTC datetime.

    MongoDB hands back naive datetimes (UTC by convention) unless the client
    is created with ``tz_aware=True``; naive values are assumed to be UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
