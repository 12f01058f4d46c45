"""Teacher portal schedule monitor.

Logs into the portal, polls the class calendar, and emails a side-by-side
report whenever the schedule of the coming days changes.
"""

from schedule_sentinel.models import ChangeReport, ChangeSummary, Event, Report
from schedule_sentinel.scheduler import Monitor, MonitorState, PollCycleState
from schedule_sentinel.session import PortalSession

__all__ = [
    "Monitor",
    "MonitorState",
    "PollCycleState",
    "PortalSession",
    "Event",
    "ChangeSummary",
    "ChangeReport",
    "Report",
]
