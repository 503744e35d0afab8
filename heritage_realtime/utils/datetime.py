"""Timestamp helpers.

Timestamps travel through the domain as aware UTC datetimes and are written
to the database as naive UTC, since SQLite drops ``tzinfo``. Only rendering
for clients uses the configured ``APP_TIMEZONE``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone, tzinfo
from functools import lru_cache

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from heritage_realtime.config import get_settings

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def display_timezone() -> tzinfo:
    """Return the zone timestamps are rendered in, falling back to UTC."""

    name = (get_settings().app_timezone or "").strip()
    if not name or name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown APP_TIMEZONE %r; rendering timestamps in UTC", name)
        return timezone.utc


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def storage_now() -> datetime:
    """Current time as a naive UTC value, for column defaults."""

    return utcnow().replace(tzinfo=None)


def to_utc(value: datetime | None) -> datetime | None:
    """Return ``value`` as an aware UTC datetime; naive values are taken as UTC."""

    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_storage(value: datetime | None) -> datetime | None:
    utc_value = to_utc(value)
    return utc_value.replace(tzinfo=None) if utc_value is not None else None


def isoformat_or_none(value: datetime | None) -> str | None:
    """Render ``value`` as ISO-8601 in the display timezone."""

    utc_value = to_utc(value)
    if utc_value is None:
        return None
    return utc_value.astimezone(display_timezone()).isoformat()
