"""Tests for the HTML change report."""

from schedule_sentinel.models import ChangeReport
from schedule_sentinel.report import EMPTY_CELL, render_report


def test_subject_spans_day_range(make_event, now, tz):
    report = render_report(
        ChangeReport(previous_window=[], current_window=[make_event(0, 9)], day_range=7), now, tz=tz
    )

    assert report.subject == "Events Report: 10-19 - 10-25"


def test_single_day_subject(now, tz):
    report = render_report(ChangeReport(previous_window=[], current_window=[], day_range=1), now, tz=tz)

    assert report.subject == "Events Report: 10-19 - 10-19"


def test_body_lists_events_side_by_side(make_event, now, tz):
    old = [make_event(0, 9, title="Algebra", location="Room 3")]
    new = [make_event(0, 9, title="Algebra", location="Room 7"), make_event(1, 13, title="Physics")]

    report = render_report(
        ChangeReport(previous_window=old, current_window=new, day_range=2),
        now,
        tz=tz,
        greeting_name="Georgina",
    )

    assert report.html.startswith("<p>Dear Georgina, your recent 2 day(s) events have been updated.</p>")
    assert "<th width=\"50%\">Old events</th>" in report.html
    assert "Monday 2026-10-19" in report.html
    assert "Tuesday 2026-10-20" in report.html
    assert "<span>09:00-10:30@Room 3</span>" in report.html
    assert "<span>09:00-10:30@Room 7</span>" in report.html
    assert "<span>Physics</span>" in report.html
    # Tuesday has nothing in the old column
    tuesday = report.html.split("Tuesday 2026-10-20")[1]
    assert tuesday.count(EMPTY_CELL) == 1


def test_empty_days_render_placeholder(now, tz):
    report = render_report(ChangeReport(previous_window=[], current_window=[], day_range=3), now, tz=tz)

    assert report.html.count(EMPTY_CELL) == 6
    assert report.html.startswith("<p>Your recent 3 day(s)")


def test_text_is_escaped(make_event, now, tz):
    event = make_event(0, 9, title="<script>alert(1)</script>", location="A&B")

    report = render_report(ChangeReport(previous_window=[], current_window=[event], day_range=1), now, tz=tz)

    assert "<script>" not in report.html
    assert "&lt;script&gt;" in report.html
    assert "@A&amp;B" in report.html


def test_events_outside_range_are_skipped(make_event, now, tz):
    report = render_report(
        ChangeReport(previous_window=[make_event(5, 9, title="Far away")], current_window=[], day_range=2),
        now,
        tz=tz,
    )

    assert "Far away" not in report.html
