"""Injectable wall-clock helpers."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def fixed_clock(moment: datetime) -> Clock:
    """Return a clock frozen at ``moment``."""

    frozen = ensure_tz(moment)
    return lambda: frozen


def ensure_tz(value: datetime) -> datetime:
    """Ensure the datetime is timezone-aware in UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
