"""Login and update loops driving the poll cycle.

Two asyncio loops share one PollCycleState owned by the Monitor:

  login loop  (every login_interval)  - no-op unless needs_login is set.
                                         A failed login stops the monitor.
  update loop (every update_interval) - started after the first login.
                                         Fetches events, swaps last_events and
                                         queues the diff-and-report step.

Each loop awaits its own tick before sleeping, so a loop never overlaps with
itself and at most one login is in flight. All mutation of PollCycleState
happens on the event loop thread; portal and SMTP calls run in worker
threads through asyncio.to_thread and are the only suspension points.

State transitions:

  NEEDS_LOGIN --login ok--> POLLING --session expired--> NEEDS_LOGIN
       |                       |
       +--login failed--> STOPPED <--unknown fetch failure
"""

import asyncio
from collections.abc import Awaitable, Callable, Coroutine
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from zoneinfo import ZoneInfo

from schedule_sentinel.diff import calc_hours, compare_events, recent_window
from schedule_sentinel.errors import SessionExpired, TransientError
from schedule_sentinel.logging import get_logger
from schedule_sentinel.models import ChangeReport, Event
from schedule_sentinel.report import render_report
from schedule_sentinel.utils import get_timezone, localize

log = get_logger(__name__)


class MonitorState(str, Enum):
    NEEDS_LOGIN = "needs_login"
    POLLING = "polling"
    STOPPED = "stopped"


@dataclass
class PollCycleState:
    """State shared by the login and update loops. Single writer: the Monitor."""

    last_events: list[Event] = field(default_factory=list)
    needs_login: bool = True
    login_initialized: bool = False
    polls: int = 0


class Monitor:
    """Schedule change monitor.

    Args:
        session: Object with login(username, password) and fetch_events(day),
            normally a PortalSession.
        sink: Object with deliver(subject, html) -> bool, normally an EmailSink.
        username: Portal username.
        password: Portal password.
        day_range: Calendar days from today compared on each poll.
        login_interval: Seconds between login loop ticks.
        update_interval: Seconds between update loop ticks.
        notify_on_startup: If False the first poll only sets the baseline.
        greeting_name: Addressee of the report greeting.
        tz: Time zone calendar days are taken in.
        clock: Returns the current time (tests pin "today" with this).
    """

    def __init__(
        self,
        session,
        sink,
        *,
        username: str,
        password: str,
        day_range: int = 7,
        login_interval: float = 1.0,
        update_interval: float = 30.0,
        notify_on_startup: bool = True,
        greeting_name: str = "",
        tz: ZoneInfo | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if day_range < 1:
            raise ValueError(f"day_range must be at least 1, got {day_range}")

        self.session = session
        self.sink = sink
        self.username = username
        self.password = password
        self.day_range = day_range
        self.login_interval = login_interval
        self.update_interval = update_interval
        self.notify_on_startup = notify_on_startup
        self.greeting_name = greeting_name
        self.tz = tz or get_timezone()
        self.clock = clock

        self.poll = PollCycleState()
        self.stop_reason: str | None = None
        self._stopped = asyncio.Event()
        self._loops: list[asyncio.Task] = []
        self._reports: set[asyncio.Task] = set()

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    @property
    def state(self) -> MonitorState:
        if self.stopped:
            return MonitorState.STOPPED
        if self.poll.needs_login:
            return MonitorState.NEEDS_LOGIN
        return MonitorState.POLLING

    def _now(self) -> datetime:
        if self.clock is not None:
            return localize(self.clock(), self.tz)
        return datetime.now(self.tz)

    def stop(self, reason: str) -> None:
        """Halt all further ticks. A tick already in flight runs to completion."""
        if self.stopped:
            return
        self.stop_reason = reason
        self._stopped.set()
        log.error("monitor_stopping", reason=reason)

    async def _sleep(self, seconds: float) -> None:
        """Sleep, waking early when the monitor stops."""
        try:
            await asyncio.wait_for(self._stopped.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def _guarded(self, tick: Callable[[], Awaitable[None]], task: str) -> None:
        """Run one tick; anything it lets escape stops the monitor."""
        try:
            await tick()
        except Exception as e:
            log.exception("tick_failed", task=task, error=str(e))
            self.stop(f"{task} tick failed: {type(e).__name__}")

    def _start_loop(self, coro: Coroutine, name: str) -> None:
        self._loops.append(asyncio.create_task(coro, name=name))

    async def _login_loop(self) -> None:
        while not self.stopped:
            await self._guarded(self.login_tick, "login")
            await self._sleep(self.login_interval)

    async def _update_loop(self) -> None:
        while True:
            await self._sleep(self.update_interval)
            if self.stopped:
                return
            await self._guarded(self.update_tick, "update")

    async def login_tick(self) -> None:
        """Log in if the update loop asked for it."""
        if self.stopped or not self.poll.needs_login:
            return

        try:
            result = await asyncio.to_thread(self.session.login, self.username, self.password)
        except Exception as e:
            log.error("login_failed", error=str(e), error_type=type(e).__name__)
            self.stop("login failed")
            return

        log.info("login_result", ok=result.ok, message=result.message)
        self.poll.needs_login = False

        if not self.poll.login_initialized:
            self.poll.login_initialized = True
            await self.update_tick()
            if not self.stopped:
                self._start_loop(self._update_loop(), "update")

    async def update_tick(self) -> None:
        """Run one poll cycle: fetch, swap last_events, queue the report step."""
        if self.stopped:
            return
        if self.poll.needs_login:
            log.info("update_pending_login")
            return

        today = self._now().date()
        log.debug("update_started", day=today.isoformat())
        try:
            events = await asyncio.to_thread(self.session.fetch_events, today)
        except SessionExpired:
            log.info("update_session_expired")
            self.poll.needs_login = True
            return
        except TransientError as e:
            log.warning("update_skipped", error=str(e), error_type=type(e).__name__)
            return
        except Exception as e:
            log.error("update_failed", error=str(e), error_type=type(e).__name__)
            self.stop("unknown fetch failure")
            return

        new_events = sorted(events, key=lambda event: event.start)
        log.info("events_updated", count=len(new_events), total_hours=calc_hours(new_events))

        old_events = self.poll.last_events
        self.poll.last_events = new_events
        self.poll.polls += 1

        if self.poll.polls == 1 and not self.notify_on_startup:
            log.info("baseline_recorded", count=len(new_events))
            return

        task = asyncio.create_task(self.report_changes(old_events, new_events))
        self._reports.add(task)
        task.add_done_callback(self._reports.discard)

    async def report_changes(self, old_events: list[Event], new_events: list[Event]) -> bool:
        """Compare the windows of two polls and send a report if they differ.

        Returns:
            True if a report was delivered.
        """
        try:
            now = self._now()
            old_window = recent_window(old_events, self.day_range, now, self.tz)
            new_window = recent_window(new_events, self.day_range, now, self.tz)

            summary = compare_events(old_window, new_window)
            if summary is None:
                log.info("no_event_changes")
                return False

            log.info(
                "event_changes_detected",
                previous_count=len(summary.previous),
                current_count=len(summary.current),
                previous_hours=summary.previous_hours,
                current_hours=summary.current_hours,
            )

            report = render_report(
                ChangeReport(
                    previous_window=old_window,
                    current_window=new_window,
                    day_range=self.day_range,
                ),
                now,
                tz=self.tz,
                greeting_name=self.greeting_name,
            )
            delivered = await asyncio.to_thread(self.sink.deliver, report.subject, report.html)
        except Exception as e:
            log.exception("report_failed", error=str(e))
            return False

        if delivered:
            log.info("report_sent", subject=report.subject)
        else:
            log.warning("report_not_delivered", subject=report.subject)
        return delivered

    async def wait_for_reports(self) -> None:
        """Wait until every queued report step has finished."""
        while self._reports:
            await asyncio.gather(*list(self._reports))

    async def run(self) -> MonitorState:
        """Run both loops until the monitor stops.

        Returns:
            The terminal state, always MonitorState.STOPPED.
        """
        log.info(
            "monitor_started",
            day_range=self.day_range,
            login_interval=self.login_interval,
            update_interval=self.update_interval,
        )
        self._start_loop(self._login_loop(), "login")

        await self._stopped.wait()
        await asyncio.gather(*self._loops)
        await self.wait_for_reports()

        log.info("monitor_stopped", reason=self.stop_reason)
        return self.state
