"""Half-open scan windows.

Day boundaries are taken in the configured local timezone, then converted to
naive UTC because that is how every timestamp is stored.
"""

from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from lifestock.utils.datetime_utils import local_zone, to_naive_utc, to_utc

EVENT_LEAD_START = timedelta(hours=1)
EVENT_LEAD_END = timedelta(hours=2)


@dataclass(frozen=True)
class ScanWindow:
    """``[start, end)`` in naive UTC."""

    start: datetime
    end: datetime

    def contains(self, moment: Optional[datetime]) -> bool:
        if moment is None:
            return False
        return self.start <= to_naive_utc(moment) < self.end

    def as_dict(self) -> dict:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


def _local_midnight(now: datetime, zone: ZoneInfo, day_offset: int) -> datetime:
    local_date = to_utc(now).astimezone(zone).date() + timedelta(days=day_offset)
    return datetime.combine(local_date, time.min, tzinfo=zone)


def day_window(
    now: datetime, day_offset: int, zone: Optional[ZoneInfo] = None
) -> ScanWindow:
    """Window covering one whole local day, ``day_offset`` days from ``now``."""
    zone = zone or local_zone()
    start = _local_midnight(now, zone, day_offset)
    end = _local_midnight(now, zone, day_offset + 1)
    return ScanWindow(start=to_naive_utc(start), end=to_naive_utc(end))


def today_window(now: datetime, zone: Optional[ZoneInfo] = None) -> ScanWindow:
    return day_window(now, 0, zone)


def tomorrow_window(now: datetime, zone: Optional[ZoneInfo] = None) -> ScanWindow:
    return day_window(now, 1, zone)


def event_window(now: datetime) -> ScanWindow:
    """Events starting between one and two hours after ``now``."""
    instant = to_naive_utc(now)
    return ScanWindow(start=instant + EVENT_LEAD_START, end=instant + EVENT_LEAD_END)
