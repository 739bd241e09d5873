"""
Calendar view: reminders and notable timeline events merged into one stream of
display events, sorted by start time.

Aggregation is all-or-nothing. If either source fails the whole request fails
with Internal; callers never see a half-filled calendar.
"""

from datetime import datetime
from typing import Callable, Iterable, Optional

import structlog

from vigil.core.clock import utcnow
from vigil.core.errors import Internal, VigilError
from vigil.metrics.prometheus import calendar_events_served_total
from vigil.schemas import CalendarDisplayEvent, ReminderOut, TimelineEventOut
from vigil.services.reminders import ReminderEngine, ReminderFilters, is_overdue
from vigil.services.timeline import TimelineEngine, TimelineFilters

logger = structlog.get_logger(__name__)

INCLUDE_REMINDERS = "reminders"
INCLUDE_TIMELINE = "timeline"
DEFAULT_INCLUDE = frozenset({INCLUDE_REMINDERS, INCLUDE_TIMELINE})

TEXT_COLOR = "#fff"
GRAY = "#95a5a6"

REMINDER_COLORS = {
    "urgent": "#ff6b6b",
    "high": "#ffa500",
    "medium": "#6fcf6f",
    "low": GRAY,
}

TIMELINE_COLORS = {
    "Sighting": "#6fcf6f",
    "TipReceived": "#ffa500",
    "StatusChanged": "#3498db",
    "SearchDispatched": "#9b59b6",
    "Found": "#2ecc71",
    "CaseClosed": GRAY,
    "CourtDate": "#e74c3c",
    "Meeting": "#3498db",
}


def reminder_color(priority: str, completed: bool) -> str:
    if completed:
        return GRAY
    return REMINDER_COLORS.get(priority, REMINDER_COLORS["medium"])


def timeline_color(event_type: str) -> str:
    return TIMELINE_COLORS.get(event_type, GRAY)


class CalendarAggregator:
    def __init__(
        self,
        timeline: TimelineEngine,
        reminders: ReminderEngine,
        important_types: Iterable[str],
        clock: Callable[[], datetime] = utcnow,
    ):
        self.timeline = timeline
        self.reminders = reminders
        self.important_types = frozenset(important_types)
        self.clock = clock

    def get_calendar_events(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        assigned_to: Optional[str] = None,
        related_to_id: Optional[str] = None,
        include_types: Iterable[str] = DEFAULT_INCLUDE,
    ) -> list[CalendarDisplayEvent]:
        include = set(include_types)
        events: list[CalendarDisplayEvent] = []

        try:
            if INCLUDE_REMINDERS in include:
                reminders = self.reminders.get_reminders(
                    ReminderFilters(
                        start_date=start,
                        end_date=end,
                        assigned_to=assigned_to,
                        related_to_id=related_to_id,
                    )
                )
                now = self.clock()
                events.extend(self._from_reminder(r, now) for r in reminders)

            if INCLUDE_TIMELINE in include:
                timeline = self.timeline.get_all_events(TimelineFilters(start_date=start, end_date=end))
                events.extend(self._from_timeline(e) for e in timeline if e.event_type in self.important_types)
        except Exception as exc:
            details = exc.details if isinstance(exc, VigilError) and exc.details else str(exc)
            logger.error("calendar_aggregation_failed", error=details, include=sorted(include))
            raise Internal("Failed to fetch calendar events", details=details) from exc

        # list.sort is stable: equal starts keep discovery order
        events.sort(key=lambda e: e.start)

        for e in events:
            calendar_events_served_total.labels(type=e.type).inc()
        return events

    def _from_reminder(self, reminder: ReminderOut, now: datetime) -> CalendarDisplayEvent:
        return CalendarDisplayEvent(
            id=f"reminder-{reminder.reminder_id}",
            title=reminder.title,
            start=reminder.due_date,
            end=reminder.due_date,
            type="reminder",
            color=reminder_color(reminder.priority, reminder.completed),
            text_color=TEXT_COLOR,
            extended_props={
                "reminderId": reminder.reminder_id,
                "priority": reminder.priority,
                "completed": reminder.completed,
                "assignedTo": reminder.assigned_to,
                "relatedToType": reminder.related_to_type,
                "relatedToId": reminder.related_to_id,
                "description": reminder.description,
                "overdue": is_overdue(reminder, now),
            },
        )

    def _from_timeline(self, event: TimelineEventOut) -> CalendarDisplayEvent:
        subject = event.loved_one
        name = subject.name if subject is not None and subject.name else "Unknown"
        return CalendarDisplayEvent(
            id=f"timeline-{event.event_id}",
            title=f"{name}: {event.event_type}",
            start=event.timestamp,
            end=event.timestamp,
            type="timeline",
            color=timeline_color(event.event_type),
            text_color=TEXT_COLOR,
            extended_props={
                "eventId": event.event_id,
                "eventType": event.event_type,
                "lovedOneId": event.subject_id,
                "lovedOneName": name,
                "description": event.description,
                "location": event.location,
            },
        )
