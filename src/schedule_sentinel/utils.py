"""Shared calendar-day helpers.

Every "today" in the monitor is a calendar day in the portal's time zone,
never a rolling 24 hour window.
"""

from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

DEFAULT_TIMEZONE = "Asia/Shanghai"


def get_timezone(name: str = DEFAULT_TIMEZONE) -> ZoneInfo:
    """Resolve an IANA time zone name (raises ZoneInfoNotFoundError if unknown)."""
    return ZoneInfo(name)


def localize(moment: datetime, tz: ZoneInfo) -> datetime:
    """Attach tz to a naive timestamp, convert an aware one."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=tz)
    return moment.astimezone(tz)


def local_day(moment: datetime, tz: ZoneInfo) -> date:
    """Calendar day of a timestamp in tz."""
    return localize(moment, tz).date()


def day_offset(moment: datetime, today: date, tz: ZoneInfo) -> int:
    """Whole calendar days between today and the day moment falls on.

    0 is today, 1 is tomorrow, -1 is yesterday.
    """
    return (local_day(moment, tz) - today).days


def day_range_dates(today: date, day_range: int) -> list[date]:
    """The day_range consecutive calendar days starting with today."""
    return [today + timedelta(days=offset) for offset in range(day_range)]
