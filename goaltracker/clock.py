"""
Reference clock.
Backend timestamps are stored as naive UTC, so every "now" default is too.
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
