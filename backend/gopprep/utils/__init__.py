"""Utility functions for the GopPrep backend."""

import uuid
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Treat naive datetimes as UTC.

    The Mongo driver hands back naive datetimes unless the client is tz-aware.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def whole_seconds_between(start: datetime, end: datetime) -> int:
    """Floor of the elapsed seconds from start to end."""
    delta = ensure_utc(end) - ensure_utc(start)
    return int(delta.total_seconds() // 1)


def whole_days_between(start: datetime, end: datetime) -> int:
    """Floor of the elapsed days from start to end."""
    delta = ensure_utc(end) - ensure_utc(start)
    return int(delta.total_seconds() // 86400)


def new_id(prefix: str) -> str:
    """Generate a prefixed identifier, e.g. ``exam_1a2b3c4d5e6f``."""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def format_percentage(obtained: float, total: float) -> float:
    """Format percentage with 2 decimals."""
    if total == 0:
        return 0.0
    return round((obtained / total) * 100, 2)
