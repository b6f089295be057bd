"""Clock helpers.

Rows store naive UTC. Reminder windows and rendered due times use the
configured ``TIMEZONE``; API payloads always carry an explicit offset.
"""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from lifestock.config.settings import settings


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def naive_utc_now() -> datetime:
    """The value written into created_at / updated_at / completed_at columns."""
    return utc_now().replace(tzinfo=None)


def local_zone() -> ZoneInfo:
    return ZoneInfo(settings.TIMEZONE)


def local_now(zone: ZoneInfo | None = None) -> datetime:
    return datetime.now(zone or local_zone())


def to_utc(dt: datetime) -> datetime:
    """Aware UTC copy of ``dt``; a naive value is taken to be UTC already."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_naive_utc(dt: datetime) -> datetime:
    """Normalize client input (any offset, or naive UTC) for storage."""
    return to_utc(dt).replace(tzinfo=None)


def from_naive_utc(dt: datetime, zone: ZoneInfo | None = None) -> datetime:
    """Render a stored timestamp in ``zone`` (UTC when omitted)."""
    if dt.tzinfo is not None:
        raise ValueError("Input datetime must be naive (no timezone info)")
    return dt.replace(tzinfo=timezone.utc).astimezone(zone or timezone.utc)


def isoformat_or_none(dt: datetime | None) -> str | None:
    return to_utc(dt).isoformat() if dt is not None else None
