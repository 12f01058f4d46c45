"""Run the schedule monitor, or poll the portal once.

Run with:   python -m schedule_sentinel
Once:       python -m schedule_sentinel --once
Test email: python -m schedule_sentinel --test-email
Range:      python -m schedule_sentinel --day-range 3

Settings come from environment variables or .env (see config.py).

Exit codes:
  0 = success (--once, --test-email) or interrupted with Ctrl-C
  1 = monitor stopped (failed login or unknown fetch failure) or error
"""

import argparse
import asyncio
import sys
from datetime import datetime

from schedule_sentinel.config import MonitorConfig, get_config
from schedule_sentinel.diff import calc_hours, recent_window
from schedule_sentinel.errors import MonitorError
from schedule_sentinel.logging import get_logger, setup_logging
from schedule_sentinel.models import Event
from schedule_sentinel.notify import EmailSink
from schedule_sentinel.scheduler import Monitor
from schedule_sentinel.session import PortalSession
from schedule_sentinel.utils import get_timezone

log = get_logger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments using argparse."""
    parser = argparse.ArgumentParser(
        prog="schedule_sentinel",
        description="Watch the teacher portal schedule and email changes.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    mode_group = parser.add_mutually_exclusive_group()
    mode_group.add_argument(
        "--once",
        action="store_true",
        help="Log in, fetch the schedule once and print the window as a table.",
    )
    mode_group.add_argument(
        "--test-email",
        action="store_true",
        help="Send a test email with the configured SMTP settings and exit.",
    )

    parser.add_argument(
        "--day-range",
        type=int,
        default=None,
        help="Calendar days from today to compare (default: MONITOR_DAY_RANGE).",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Output logs as JSON (default: LOG_JSON).",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Log level (default: LOG_LEVEL).",
    )
    args = parser.parse_args(argv)
    if args.day_range is not None and args.day_range < 1:
        parser.error("--day-range must be at least 1")
    return args


def _format_table(events: list[Event]) -> str:
    """Format events as a human-readable table.

    Columns: Date | Time | Title | Location
    """
    if not events:
        return "(no classes scheduled)"

    headers = ["Date", "Time", "Title", "Location"]

    rows = []
    for e in events:
        rows.append(
            [
                e.start.strftime("%Y-%m-%d %a"),
                e.time_label or f"{e.start:%H:%M}-{e.end:%H:%M}",
                e.title or "-",
                e.location or "-",
            ]
        )

    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    header_line = " | ".join(h.ljust(widths[i]) for i, h in enumerate(headers))
    separator = "-+-".join("-" * w for w in widths)

    row_lines = []
    for row in rows:
        row_lines.append(" | ".join(cell.ljust(widths[i]) for i, cell in enumerate(row)))

    return "\n".join([header_line, separator, *row_lines])


def build_session(config: MonitorConfig) -> PortalSession:
    return PortalSession(
        config.portal_url,
        timezone=config.portal_timezone,
        timeout=config.request_timeout_seconds,
        verify_ssl=config.portal_verify_ssl,
    )


def build_monitor(config: MonitorConfig, day_range: int) -> Monitor:
    return Monitor(
        build_session(config),
        EmailSink.from_config(config),
        username=config.portal_user,
        password=config.portal_pass,
        day_range=day_range,
        login_interval=config.login_interval_seconds,
        update_interval=config.update_interval_seconds,
        notify_on_startup=config.notify_on_startup,
        greeting_name=config.report_greeting_name,
        tz=get_timezone(config.portal_timezone),
    )


def poll_once(config: MonitorConfig, day_range: int) -> list[Event]:
    """Log in, fetch once and return the sorted events inside the window."""
    session = build_session(config)
    session.login(config.portal_user, config.portal_pass)

    tz = get_timezone(config.portal_timezone)
    events = sorted(session.fetch_events(datetime.now(tz).date()), key=lambda e: e.start)
    return recent_window(events, day_range, tz=tz)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    config = get_config()

    setup_logging(
        json_output=args.json_logs or config.log_json,
        log_level=args.log_level or config.log_level,
    )
    day_range = args.day_range or config.monitor_day_range

    if args.test_email:
        return 0 if EmailSink.from_config(config).send_test_email() else 1

    if args.once:
        try:
            events = poll_once(config, day_range)
        except MonitorError as e:
            log.error("poll_once_failed", error=str(e), error_type=type(e).__name__)
            return 1
        print(_format_table(events))
        log.info("poll_once_done", count=len(events), total_hours=calc_hours(events))
        return 0

    if not config.portal_user or not config.portal_pass:
        log.error("credentials_missing", hint="set PORTAL_USER and PORTAL_PASS")
        return 1

    monitor = build_monitor(config, day_range)
    try:
        asyncio.run(monitor.run())
    except KeyboardInterrupt:
        log.info("monitor_interrupted")
        return 0
    return 1


if __name__ == "__main__":
    sys.exit(main())
