from datetime import timedelta

import pytest

from conftest import NOW
from vigil.core.config import settings
from vigil.core.errors import Internal
from vigil.models import LovedOne
from vigil.services.calendar import GRAY, CalendarAggregator, reminder_color, timeline_color
from vigil.services.reminders import ReminderEngine
from vigil.services.timeline import TimelineEngine


@pytest.fixture()
def timeline(store, clock):
    return TimelineEngine(store, clock=clock)


@pytest.fixture()
def reminders(store, clock):
    return ReminderEngine(store, clock=clock)


@pytest.fixture()
def calendar(timeline, reminders, clock):
    return CalendarAggregator(timeline, reminders, important_types=settings.calendar_timeline_types, clock=clock)


@pytest.fixture()
def mary(session):
    session.add(LovedOne(id="lo-1", name="Mary", community="Lakeview"))
    session.commit()


def test_merges_and_sorts_by_start(calendar, timeline, reminders, mary):
    reminders.create_reminder("Court filing", NOW + timedelta(days=2), priority="urgent")
    timeline.add_event("lo-1", "Sighting", "Seen at the market", timestamp=NOW + timedelta(days=1))

    events = calendar.get_calendar_events()

    assert [e.type for e in events] == ["timeline", "reminder"]
    assert events[0].title == "Mary: Sighting"
    assert events[1].title == "Court filing"


def test_equal_starts_keep_reminders_first(calendar, timeline, reminders, mary):
    timeline.add_event("lo-1", "TipReceived", "Caller", timestamp=NOW + timedelta(days=1))
    reminders.create_reminder("Follow up tip", NOW + timedelta(days=1))

    events = calendar.get_calendar_events()

    assert [e.type for e in events] == ["reminder", "timeline"]


def test_reminder_display_fields(calendar, reminders):
    due = NOW + timedelta(days=1)
    out = reminders.create_reminder(
        "Call family", due, priority="urgent", assigned_to="a@example.org", description="weekly"
    )

    [event] = calendar.get_calendar_events()

    assert event.id == f"reminder-{out.reminder_id}"
    assert event.start == due
    assert event.end == due
    assert event.all_day is False
    assert event.color == "#ff6b6b"
    assert event.text_color == "#fff"
    assert event.extended_props["reminderId"] == out.reminder_id
    assert event.extended_props["priority"] == "urgent"
    assert event.extended_props["assignedTo"] == "a@example.org"
    assert event.extended_props["description"] == "weekly"
    assert event.extended_props["overdue"] is False


def test_overdue_and_completed_reminders(calendar, reminders):
    late = reminders.create_reminder("late", NOW - timedelta(days=1), priority="high")
    done = reminders.create_reminder("done", NOW - timedelta(days=2), priority="urgent")
    reminders.update_reminder(done.reminder_id, {"completed": True})

    events = {e.title: e for e in calendar.get_calendar_events()}

    assert events["late"].extended_props["overdue"] is True
    assert events["late"].color == "#ffa500"
    assert events["done"].extended_props["overdue"] is False
    assert events["done"].color == GRAY
    assert late.reminder_id in events["late"].id


def test_only_important_timeline_types(calendar, timeline, mary):
    timeline.add_event("lo-1", "NoteAdded", "internal note", timestamp=NOW)
    timeline.add_event("lo-1", "CaseOpened", "opened", timestamp=NOW)
    found = timeline.add_event("lo-1", "Found", "Located", timestamp=NOW + timedelta(hours=1), location="Depot")

    events = calendar.get_calendar_events()

    assert [e.extended_props["eventType"] for e in events] == ["Found"]
    assert events[0].id == f"timeline-{found.event_id}"
    assert events[0].color == "#2ecc71"
    assert events[0].extended_props["lovedOneId"] == "lo-1"
    assert events[0].extended_props["lovedOneName"] == "Mary"
    assert events[0].extended_props["location"] == "Depot"


def test_important_types_are_injected(timeline, reminders, clock, mary):
    calendar = CalendarAggregator(timeline, reminders, important_types={"NoteAdded"}, clock=clock)
    timeline.add_event("lo-1", "NoteAdded", "internal note", timestamp=NOW)
    timeline.add_event("lo-1", "Sighting", "seen", timestamp=NOW)

    assert [e.extended_props["eventType"] for e in calendar.get_calendar_events()] == ["NoteAdded"]


def test_include_types(calendar, timeline, reminders, mary):
    reminders.create_reminder("Call", NOW)
    timeline.add_event("lo-1", "Sighting", "seen", timestamp=NOW)

    assert [e.type for e in calendar.get_calendar_events(include_types=["reminders"])] == ["reminder"]
    assert [e.type for e in calendar.get_calendar_events(include_types=["timeline"])] == ["timeline"]
    assert calendar.get_calendar_events(include_types=[]) == []


def test_window_and_reminder_filters(calendar, timeline, reminders, mary):
    reminders.create_reminder("in window", NOW + timedelta(days=1), assigned_to="a@example.org")
    reminders.create_reminder("other worker", NOW + timedelta(days=1), assigned_to="b@example.org")
    reminders.create_reminder("too late", NOW + timedelta(days=10), assigned_to="a@example.org")
    timeline.add_event("lo-1", "Sighting", "seen", timestamp=NOW + timedelta(days=2))
    timeline.add_event("lo-1", "Sighting", "old", timestamp=NOW - timedelta(days=10))

    events = calendar.get_calendar_events(start=NOW, end=NOW + timedelta(days=5), assigned_to="a@example.org")

    assert [e.title for e in events] == ["in window", "Mary: Sighting"]


def test_unnamed_subject_title(calendar, timeline, session):
    session.add(LovedOne(id="lo-9", name=""))
    session.commit()
    timeline.add_event("lo-9", "Sighting", "seen", timestamp=NOW)

    [event] = calendar.get_calendar_events()
    assert event.title == "Unknown: Sighting"


def test_source_failure_fails_whole_request(calendar, timeline, reminders, monkeypatch):
    reminders.create_reminder("Call", NOW)

    def broken(*args, **kwargs):
        raise RuntimeError("connection reset")

    monkeypatch.setattr(timeline, "get_all_events", broken)

    with pytest.raises(Internal) as exc:
        calendar.get_calendar_events()
    assert exc.value.message == "Failed to fetch calendar events"
    assert exc.value.details == "connection reset"


def test_colors():
    assert reminder_color("urgent", False) == "#ff6b6b"
    assert reminder_color("medium", False) == "#6fcf6f"
    assert reminder_color("low", False) == GRAY
    assert reminder_color("urgent", True) == GRAY
    assert timeline_color("TipReceived") == "#ffa500"
    assert timeline_color("NoteAdded") == GRAY
