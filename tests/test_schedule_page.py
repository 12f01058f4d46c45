"""Tests for the calendar page and data script extraction."""

from datetime import datetime

import pytest

from schedule_sentinel.errors import DecodeError, ExtractionError, TitleParseError
from schedule_sentinel.pages.schedule import (
    extract_events,
    find_data_script_url,
    find_event_array,
    normalize_title,
    parse_title,
)


FIXTURE_TITLE = (
    'Algebra <br/><span title="教师考勤...">X</span> '
    '<span title="学员考勤...">Y</span> '
    '<span title="校区">Room 3</span><br/>09:00-10:30'
)


def test_parse_title_well_formed():
    assert parse_title(FIXTURE_TITLE) == ("Algebra", "Room 3", "09:00-10:30")


def test_parse_title_keeps_unicode_location():
    text = FIXTURE_TITLE.replace("Room 3", "徐汇校区 302")
    assert parse_title(text)[1] == "徐汇校区 302"


@pytest.mark.parametrize("text", ["", "Algebra", "Algebra <br/>09:00-10:30", None])
def test_parse_title_malformed_raises(text):
    with pytest.raises(TitleParseError):
        parse_title(text)


def test_normalize_title_malformed_returns_blanks():
    assert normalize_title("Algebra (moved)") == ("", "", "")


def test_find_data_script_url(calendar_page):
    assert find_data_script_url(calendar_page) == (
        "/extnet/extnet-init-js/ext.axd?144ab5dcab284d518c2de3e8595de9c9"
    )


def test_find_data_script_url_missing():
    with pytest.raises(ExtractionError):
        find_data_script_url("<html><body>maintenance</body></html>")


def test_extract_events(portal_script, make_record, tz):
    blob = portal_script(
        [
            make_record(1, "Algebra", "Room 3", "2026-10-19T09:00:00", "2026-10-19T10:30:00"),
            make_record(2, "Physics", "Room 5", "2026-10-20T13:00:00", "2026-10-20T14:00:00"),
        ]
    )

    events = extract_events(blob, tz)

    assert len(events) == 2
    first = events[0]
    assert (first.title, first.location, first.time_label) == ("Algebra", "Room 3", "09:00-10:30")
    assert first.start == datetime(2026, 10, 19, 9, 0, tzinfo=tz)
    assert first.end == datetime(2026, 10, 19, 10, 30, tzinfo=tz)
    assert events[1].title == "Physics"


def test_extract_events_keeps_record_with_malformed_title(portal_script, make_record, tz):
    blob = portal_script(
        [
            make_record(1, raw_title="Algebra <b>cancelled</b>"),
            make_record(2, "Physics", "Room 5", "2026-10-20T13:00:00", "2026-10-20T14:00:00"),
        ]
    )

    events = extract_events(blob, tz)

    assert len(events) == 2
    assert (events[0].title, events[0].location, events[0].time_label) == ("", "", "")
    assert events[0].start == datetime(2026, 10, 19, 9, 0, tzinfo=tz)
    assert events[1].title == "Physics"


@pytest.mark.parametrize("title", [None, 42, "missing"])
def test_extract_events_keeps_record_with_non_text_title(portal_script, make_record, tz, title):
    record = make_record(1)
    if title == "missing":
        del record["Title"]
    else:
        record["Title"] = title
    physics = make_record(2, "Physics", "Room 5", "2026-10-20T13:00:00", "2026-10-20T14:00:00")

    events = extract_events(portal_script([record, physics]), tz)

    assert [event.title for event in events] == ["", "Physics"]
    assert events[0].start == datetime(2026, 10, 19, 9, 0, tzinfo=tz)


def test_extract_events_empty_array(portal_script, tz):
    assert extract_events(portal_script([]), tz) == []


def test_extract_events_without_anchor_is_empty(tz):
    assert extract_events("Ext.onReady(function(){});", tz) == []


def test_find_event_array_missing_anchor():
    with pytest.raises(ExtractionError):
        find_event_array("Ext.onReady(function(){});")


def test_find_event_array(portal_script, make_record):
    assert find_event_array(portal_script([make_record(7)])).startswith('[{"EventId": 7')


def test_extract_events_bad_date_fails_whole_call(portal_script, make_record, tz):
    blob = portal_script(
        [
            make_record(1),
            make_record(2, start="next tuesday", end="2026-10-20T14:00:00"),
        ]
    )

    with pytest.raises(DecodeError):
        extract_events(blob, tz)


def test_extract_events_end_before_start_fails(portal_script, make_record, tz):
    blob = portal_script([make_record(1, start="2026-10-19T11:00:00", end="2026-10-19T10:00:00")])

    with pytest.raises(DecodeError):
        extract_events(blob, tz)


def test_extract_events_invalid_json_fails(portal_script, tz):
    blob = portal_script([]).replace("PagingMemoryProxy([]", "PagingMemoryProxy([{Title:1}]")

    with pytest.raises(DecodeError):
        extract_events(blob, tz)


def test_extract_events_converts_aware_timestamps(portal_script, make_record, tz):
    blob = portal_script(
        [make_record(1, start="2026-10-19T01:00:00+00:00", end="2026-10-19T02:00:00+00:00")]
    )

    (event,) = extract_events(blob, tz)

    assert event.start == datetime(2026, 10, 19, 9, 0, tzinfo=tz)
    assert event.start.tzinfo == tz
