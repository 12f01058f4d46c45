"""Change detection between two polls of the schedule.

Only the lookahead window matters: both polls are cut down to the same
calendar days with recent_window() before compare_events() decides whether
they differ. Comparison is positional over start-sorted events, so a swap
of two classes counts as a change even when hours and counts agree.
"""

from collections.abc import Sequence
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from schedule_sentinel.models import ChangeSummary, Event
from schedule_sentinel.utils import day_offset, get_timezone, localize

_ONE_HOUR = timedelta(hours=1)


def total_duration(events: Sequence[Event]) -> timedelta:
    """Sum of end - start over all events."""
    return sum((event.end - event.start for event in events), timedelta())


def calc_hours(events: Sequence[Event]) -> float:
    """Total scheduled hours of events."""
    return total_duration(events) / _ONE_HOUR


def recent_window(
    events: Sequence[Event],
    day_range: int,
    now: datetime | None = None,
    tz: ZoneInfo | None = None,
) -> list[Event]:
    """Events starting within the next day_range calendar days, today included.

    Keeps events whose start falls on [today 00:00, today + day_range - 1 23:59:59]
    in tz. Days are calendar days, not rolling 24 hour periods.

    Args:
        events: Events to filter, order is preserved.
        day_range: Number of calendar days, at least 1.
        now: Reference time (default: current time).
        tz: Reference time zone (default: the portal's).

    Raises:
        ValueError: If day_range is smaller than 1.
    """
    if day_range < 1:
        raise ValueError(f"day_range must be at least 1, got {day_range}")

    tz = tz or get_timezone()
    today = localize(now or datetime.now(tz), tz).date()
    return [event for event in events if 0 <= day_offset(event.start, today, tz) < day_range]


def _same_event(a: Event, b: Event) -> bool:
    return (
        a.start == b.start
        and a.end == b.end
        and a.title == b.title
        and a.location == b.location
        and a.time_label == b.time_label
    )


def compare_events(prev: Sequence[Event], curr: Sequence[Event]) -> ChangeSummary | None:
    """Compare two windows of events.

    Returns:
        None if both windows have the same total duration, the same number
        of events and field-identical events at every position. Otherwise a
        ChangeSummary carrying both windows.
    """
    summary = ChangeSummary(
        previous=list(prev),
        current=list(curr),
        previous_hours=calc_hours(prev),
        current_hours=calc_hours(curr),
    )

    if total_duration(prev) != total_duration(curr) or len(prev) != len(curr):
        return summary

    for old, new in zip(prev, curr):
        if not _same_event(old, new):
            return summary

    return None
