"""HTML change report: old and new schedule side by side, one row per day."""

from datetime import date, datetime
from html import escape
from zoneinfo import ZoneInfo

from schedule_sentinel.logging import get_logger
from schedule_sentinel.models import ChangeReport, Event, Report
from schedule_sentinel.utils import day_offset, day_range_dates, get_timezone, localize

log = get_logger(__name__)

SUBJECT_DATE_FORMAT = "%m-%d"
DAY_HEADER_FORMAT = "%A %Y-%m-%d"
EMPTY_CELL = "<center>Free</center>"


def _bucket_by_day(
    events: list[Event], today: date, day_range: int, tz: ZoneInfo, column: str
) -> list[list[Event]]:
    buckets: list[list[Event]] = [[] for _ in range(day_range)]
    for event in events:
        offset = day_offset(event.start, today, tz)
        if not 0 <= offset < day_range:
            log.warning(
                "report_event_out_of_range",
                column=column,
                start=event.start.isoformat(),
                title=event.title,
            )
            continue
        buckets[offset].append(event)
    return buckets


def _render_cell(events: list[Event]) -> str:
    if not events:
        return EMPTY_CELL
    rows = "".join(
        "<tr><td>"
        f"<span>{escape(event.time_label)}@{escape(event.location)}</span><br/>"
        f"<span>{escape(event.title)}</span><br/>"
        "</td></tr>"
        for event in events
    )
    return f'<table cellspacing="10px">{rows}</table>'


def render_report(
    change: ChangeReport,
    now: datetime | None = None,
    *,
    tz: ZoneInfo | None = None,
    greeting_name: str = "",
) -> Report:
    """Render a change report as an HTML email.

    Args:
        change: Previous and current windows plus the day range they cover.
        now: Reference time, day 0 of the report (default: current time).
        tz: Time zone calendar days are taken in (default: the portal's).
        greeting_name: Addressee of the greeting line, omitted if empty.

    Returns:
        Report with subject "Events Report: MM-DD - MM-DD" and an HTML body.
    """
    tz = tz or get_timezone()
    now = localize(now or datetime.now(tz), tz)
    today = now.date()
    days = day_range_dates(today, change.day_range)

    old_by_day = _bucket_by_day(change.previous_window, today, change.day_range, tz, "old")
    new_by_day = _bucket_by_day(change.current_window, today, change.day_range, tz, "new")

    rows = []
    for day, old_events, new_events in zip(days, old_by_day, new_by_day):
        rows.append(
            f'<tr><td align="center" colspan="2">{day.strftime(DAY_HEADER_FORMAT)}</td></tr>'
            "<tr>"
            f"<td>{_render_cell(old_events)}</td>"
            f"<td>{_render_cell(new_events)}</td>"
            "</tr>"
        )

    table = (
        '<table border="1" cellpadding="5px" style="border-collapse: collapse;">'
        '<tr><th width="50%">Old events</th><th width="50%">New events</th></tr>'
        f"{''.join(rows)}"
        "</table>"
    )

    addressee = f"Dear {escape(greeting_name)}, your" if greeting_name else "Your"
    greeting = (
        f"<p>{addressee} recent {change.day_range} day(s) events have been updated.</p>"
    )

    subject = (
        "Events Report: "
        f"{days[0].strftime(SUBJECT_DATE_FORMAT)} - {days[-1].strftime(SUBJECT_DATE_FORMAT)}"
    )
    return Report(subject=subject, html=greeting + table)
