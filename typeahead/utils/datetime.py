"""Time utilities with timezone-aware defaults."""

from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return current UTC time with tzinfo."""

    return datetime.now(timezone.utc)


def epoch_millis() -> int:
    """Return the current UTC time as integer milliseconds since the epoch."""

    return int(utc_now().timestamp() * 1000)


__all__ = ["epoch_millis", "utc_now"]
