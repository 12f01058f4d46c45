"""
Pytest configuration and shared fixtures.
"""

import json
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from schedule_sentinel.models import Event

TZ = ZoneInfo("Asia/Shanghai")

# Monday 2026-10-19, 10:00 in the portal's time zone
NOW = datetime(2026, 10, 19, 10, 0, tzinfo=TZ)


def portal_title(title: str, location: str, time_label: str) -> str:
    """Title fragment in the layout the portal generates."""
    return (
        f"{title} <br/>"
        '<span title="教师考勤：已考勤">已考勤</span> '
        '<span title="学员考勤：3/4">3/4</span> '
        f'<span title="校区">{location}</span><br/>'
        f"{time_label}"
    )


@pytest.fixture
def tz():
    return TZ


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_event():
    """Build an Event on day `day` (0 = today) starting at `hour`."""

    def _make(day=0, hour=9, minutes=90, title="Algebra", location="Room 3", time_label=None):
        start = NOW.replace(hour=hour, minute=0) + timedelta(days=day)
        end = start + timedelta(minutes=minutes)
        if time_label is None:
            time_label = f"{start:%H:%M}-{end:%H:%M}"
        return Event(title=title, location=location, time_label=time_label, start=start, end=end)

    return _make


@pytest.fixture
def make_record():
    """Build one raw record of the embedded event array."""

    def _make(event_id=1, title="Algebra", location="Room 3", start="2026-10-19T09:00:00",
              end="2026-10-19T10:30:00", raw_title=None):
        if raw_title is None:
            raw_title = portal_title(title, location, f"{start[11:16]}-{end[11:16]}")
        return {
            "EventId": event_id,
            "CalendarId": 1,
            "Title": raw_title,
            "StartDate": start,
            "EndDate": end,
            "IsAllDay": False,
        }

    return _make


@pytest.fixture
def portal_script():
    """Wrap records in the Ext.NET init script the portal serves."""

    def _make(records) -> str:
        data = json.dumps(records, ensure_ascii=False)
        return (
            "Ext.net.ResourceMgr.init({id:\"ResourceManager1\"});"
            "Ext.onReady(function(){Ext.net.ResourceMgr.destroyCmp(\"CalendarPanel1\");"
            "window.CalendarPanel1=new Ext.calendar.CalendarPanel({"
            "eventStore:new Ext.calendar.EventStore({reader:new Ext.data.JsonReader({"
            "fields:[{name:\"EventId\"},{name:\"Title\"}],idProperty:\"EventId\"}),"
            "directEventConfig:{},"
            f"proxy:new Ext.data.PagingMemoryProxy({data}, false)}}),"
            "monthViewCfg:{showHeader:true}});});"
        )

    return _make


@pytest.fixture
def calendar_page():
    """Class calendar page referencing the event data script."""
    return (
        "<html><head>"
        '<script type="text/javascript" src="/extnet/extnet-js/ext-all.js"></script>'
        '<script type="text/javascript" '
        'src="/extnet/extnet-init-js/ext.axd?144ab5dcab284d518c2de3e8595de9c9"></script>'
        "</head><body><form id=\"form1\"></form></body></html>"
    )
