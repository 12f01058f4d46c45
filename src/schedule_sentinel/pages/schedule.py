"""Teacher class calendar - extracts scheduled events from the portal.

The class calendar page at /Teacher/TeacherClass.aspx?time=YYYY-MM-DD does
not carry the events itself. It references a generated Ext.NET init script:

  <script src="/extnet/extnet-init-js/ext.axd?144ab5dcab284d518c2de3e8595de9c9">

and that script builds the calendar store from an inline array literal:

  ...,idProperty:"EventId"}),directEventConfig:{},
  proxy:new Ext.data.PagingMemoryProxy([{...}, {...}], false)}),monthViewCfg...

Each record looks like:
  {"EventId": 1, "Title": "<html fragment>",
   "StartDate": "2026-10-19T09:00:00", "EndDate": "2026-10-19T10:30:00", ...}

The Title fragment packs the class name, two attendance spans, the campus
and the displayed time into one string:

  Algebra <br/><span title="教师考勤...">X</span> <span title="学员考勤...">Y</span>
  <span title="校区">Room 3</span><br/>09:00-10:30

All of this is generated markup and changes without notice, so every
pattern lives in this module.
"""

import json
import re
from zoneinfo import ZoneInfo

from pydantic import ValidationError

from schedule_sentinel.errors import DecodeError, ExtractionError, TitleParseError
from schedule_sentinel.logging import get_logger
from schedule_sentinel.models import Event, RawEvent
from schedule_sentinel.utils import get_timezone, localize

log = get_logger(__name__)

PAGE_PATH = "/Teacher/TeacherClass.aspx"

DATA_SCRIPT_RE = re.compile(r'src="(/extnet/extnet-init-js/ext\.axd\?[0-9a-z]*?)"')

EVENT_ARRAY_RE = re.compile(
    r',idProperty:"EventId"}\),directEventConfig:{},'
    r"proxy:new Ext\.data\.PagingMemoryProxy\((\[.*?\]), false\)}\),monthViewCfg",
    re.DOTALL,
)

TITLE_RE = re.compile(
    r"([^<]*?) <br/>"
    r'<span title="教师考勤[^"]*?">[^<]*?</span> '
    r'<span title="学员考勤[^"]*?">[^<]*?</span> '
    r'<span title="校区">([^<]*?)</span><br/>'
    r"(.*)",
    re.DOTALL,
)


def find_data_script_url(page: str) -> str:
    """Find the path of the Ext.NET script that carries the event data.

    Args:
        page: HTML body of the class calendar page.

    Returns:
        Path such as "/extnet/extnet-init-js/ext.axd?144ab5dc...".

    Raises:
        ExtractionError: If the page references no such script.
    """
    match = DATA_SCRIPT_RE.search(page or "")
    if not match:
        raise ExtractionError("calendar page references no event data script")
    return match.group(1)


def find_event_array(blob: str) -> str:
    """Find the array literal the calendar event store is built from.

    Raises:
        ExtractionError: If the script has no event store anchor.
    """
    match = EVENT_ARRAY_RE.search(blob or "")
    if not match:
        raise ExtractionError("event store anchor not found in data script")
    return match.group(1)


def parse_title(text: str) -> tuple[str, str, str]:
    """Split a portal title fragment into (title, location, time_label).

    Raises:
        TitleParseError: If the fragment does not follow the portal layout.
    """
    match = TITLE_RE.search(text or "")
    if not match:
        raise TitleParseError(f"unrecognized event title: {text!r}")
    return match.group(1), match.group(2), match.group(3)


def normalize_title(text: str) -> tuple[str, str, str]:
    """Best-effort version of parse_title(): blanks instead of an error."""
    try:
        return parse_title(text)
    except TitleParseError:
        log.error("event_title_unparsed", title=text)
        return "", "", ""


def extract_events(blob: str, tz: ZoneInfo | None = None) -> list[Event]:
    """Decode the events embedded in the calendar data script.

    Args:
        blob: Body of the Ext.NET init script.
        tz: Time zone of the portal's naive timestamps.

    Returns:
        Events in script order. Empty if the script has no event store.

    Raises:
        DecodeError: If the array literal or any record in it is malformed.
            No partial result is returned.
    """
    tz = tz or get_timezone()

    try:
        raw_array = find_event_array(blob)
    except ExtractionError as e:
        log.warning("event_data_missing", error=str(e), script_length=len(blob or ""))
        return []

    try:
        records = json.loads(raw_array)
    except json.JSONDecodeError as e:
        log.error("event_data_undecodable", error=str(e), data=raw_array[:500])
        raise DecodeError(f"event data is not valid JSON: {e}") from e

    if not isinstance(records, list):
        raise DecodeError(f"event data is a {type(records).__name__}, expected a list")

    events: list[Event] = []
    for index, record in enumerate(records):
        try:
            raw = RawEvent.model_validate(record)
            title, location, time_label = normalize_title(raw.title)
            event = Event(
                title=title,
                location=location,
                time_label=time_label,
                start=localize(raw.start, tz),
                end=localize(raw.end, tz),
            )
        except ValidationError as e:
            log.error("event_record_invalid", index=index, error=str(e))
            raise DecodeError(f"event record {index} is invalid: {e}") from e
        events.append(event)

    log.debug("events_extracted", count=len(events))
    return events
