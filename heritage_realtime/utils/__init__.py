"""Utility helpers for reusable functionality."""

from .datetime import (
    display_timezone,
    isoformat_or_none,
    storage_now,
    to_storage,
    to_utc,
    utcnow,
)

__all__ = [
    "display_timezone",
    "isoformat_or_none",
    "storage_now",
    "to_storage",
    "to_utc",
    "utcnow",
]
