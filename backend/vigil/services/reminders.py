"""
Reminders: scheduled, completable follow-up tasks.

A reminder may hang off a case (Applicant) or a LovedOne through HAS_REMINDER and
point at its assignee through ASSIGNED_TO. Edges are only written when the other
end exists; the scalar fields are stored regardless.

Overdue and upcoming are derived at read time and never stored.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Mapping, Optional

import structlog

from vigil.core.clock import as_utc, utcnow
from vigil.core.errors import InvalidArgument, NotFound
from vigil.metrics.prometheus import reminder_links_total, reminders_created_total
from vigil.models.reminder import Priority, RelatedToType, ReminderType
from vigil.schemas import ReminderOut
from vigil.store.filters import Eq, OrderBy, Range
from vigil.store.graph import APPLICANT, ASSIGNED_TO, HAS_REMINDER, LOVED_ONE, REMINDER, USER, GraphStore, ref

logger = structlog.get_logger(__name__)

DEFAULT_UPCOMING_DAYS = 7
UPDATABLE_FIELDS = ("title", "description", "due_date", "priority", "completed", "assigned_to")

_RELATED_LABELS = {
    RelatedToType.CASE.value: APPLICANT,
    RelatedToType.LOVED_ONE.value: LOVED_ONE,
}


@dataclass
class ReminderFilters:
    assigned_to: Optional[str] = None
    related_to_type: Optional[str] = None
    related_to_id: Optional[str] = None
    completed: Optional[bool] = None
    priority: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    overdue: bool = False


def is_overdue(reminder: ReminderOut, now: datetime) -> bool:
    return not reminder.completed and as_utc(reminder.due_date) < as_utc(now)


def is_upcoming(reminder: ReminderOut, now: datetime, days: int = DEFAULT_UPCOMING_DAYS) -> bool:
    now = as_utc(now)
    due = as_utc(reminder.due_date)
    return not reminder.completed and now <= due <= now + timedelta(days=days)


def _enum_value(enum_cls: type[Enum], value: Any, field: str) -> str:
    try:
        return enum_cls(value).value
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise InvalidArgument(f"Invalid {field}: {value}. Must be one of: {allowed}")


def _related_type(value: Optional[str]) -> Optional[str]:
    if not value or value == "none":
        return None
    return _enum_value(RelatedToType, value, "relatedToType")


def _due_date(value: Any) -> datetime:
    if not isinstance(value, datetime):
        raise InvalidArgument("dueDate must be a datetime")
    return as_utc(value)


class ReminderEngine:
    def __init__(
        self,
        store: GraphStore,
        clock: Callable[[], datetime] = utcnow,
        upcoming_days: int = DEFAULT_UPCOMING_DAYS,
    ):
        self.store = store
        self.clock = clock
        self.upcoming_days = upcoming_days

    def create_reminder(
        self,
        title: Optional[str],
        due_date: Optional[datetime],
        created_by: str = "system",
        description: Optional[str] = None,
        related_to_type: Optional[str] = None,
        related_to_id: Optional[str] = None,
        assigned_to: Optional[str] = None,
        priority: Optional[str] = None,
        reminder_type: Optional[str] = None,
    ) -> ReminderOut:
        if not title or not title.strip() or due_date is None:
            raise InvalidArgument("Title and due date are required")

        fields = {
            "title": title,
            "description": description or "",
            "due_date": _due_date(due_date),
            "created_by": created_by or "system",
            "related_to_type": _related_type(related_to_type),
            "related_to_id": related_to_id or None,
            "assigned_to": assigned_to or None,
            "priority": _enum_value(Priority, priority or Priority.MEDIUM.value, "priority"),
            "reminder_type": _enum_value(ReminderType, reminder_type or ReminderType.OTHER.value, "reminderType"),
            "completed": False,
            "created_at": self.clock(),
        }

        with self.store.transaction():
            reminder = self.store.create(REMINDER, fields)
            node = ref(REMINDER, reminder.reminder_id)
            if fields["related_to_type"] and fields["related_to_id"]:
                self._link_related(node, fields["related_to_type"], fields["related_to_id"])
            if fields["assigned_to"]:
                self._link_assignee(node, fields["assigned_to"])

        reminders_created_total.labels(priority=fields["priority"]).inc()
        logger.info("reminder_created", reminder_id=reminder.reminder_id, due_date=fields["due_date"].isoformat())
        return ReminderOut.from_node(reminder)

    def _link_related(self, node, related_to_type: str, related_to_id: str) -> None:
        label = _RELATED_LABELS[related_to_type]
        if self.store.create_edge(ref(label, related_to_id), HAS_REMINDER, node):
            reminder_links_total.labels(edge_type=HAS_REMINDER, outcome="linked").inc()
            return
        reminder_links_total.labels(edge_type=HAS_REMINDER, outcome="dangling").inc()
        logger.warning("reminder_related_missing", reminder_id=node.value, label=label, related_to_id=related_to_id)

    def _link_assignee(self, node, email: str) -> None:
        if self.store.create_edge(node, ASSIGNED_TO, ref(USER, email)):
            reminder_links_total.labels(edge_type=ASSIGNED_TO, outcome="linked").inc()
            return
        reminder_links_total.labels(edge_type=ASSIGNED_TO, outcome="dangling").inc()
        logger.warning("reminder_assignee_missing", reminder_id=node.value, assigned_to=email)

    def _clauses(self, filters: ReminderFilters) -> list:
        clauses: list = []

        if filters.assigned_to:
            clauses.append(Eq("assigned_to", filters.assigned_to))
        if filters.related_to_type:
            clauses.append(Eq("related_to_type", filters.related_to_type))
        if filters.related_to_id:
            clauses.append(Eq("related_to_id", filters.related_to_id))
        if filters.completed is not None:
            clauses.append(Eq("completed", filters.completed))
        if filters.priority:
            clauses.append(Eq("priority", filters.priority))
        if filters.start_date or filters.end_date:
            clauses.append(Range("due_date", gte=as_utc(filters.start_date), lte=as_utc(filters.end_date)))
        if filters.overdue:
            clauses.append(Eq("completed", False))
            clauses.append(Range("due_date", lt=self.clock()))
        return clauses

    def get_reminders(self, filters: Optional[ReminderFilters] = None) -> list[ReminderOut]:
        clauses = self._clauses(filters or ReminderFilters())
        matches = self.store.query(REMINDER, filters=clauses, ordering=[OrderBy("due_date")])
        return [ReminderOut.from_node(m.node) for m in matches]

    def count_reminders(self, filters: Optional[ReminderFilters] = None) -> int:
        return self.store.count(REMINDER, filters=self._clauses(filters or ReminderFilters()))

    def get_reminder_by_id(self, reminder_id: str) -> Optional[ReminderOut]:
        node = self.store.find_one(REMINDER, "reminder_id", reminder_id)
        return ReminderOut.from_node(node) if node is not None else None

    def update_reminder(self, reminder_id: str, changes: Mapping[str, Any]) -> ReminderOut:
        unknown = sorted(set(changes) - set(UPDATABLE_FIELDS))
        if unknown:
            raise InvalidArgument(f"Fields cannot be updated: {', '.join(unknown)}")
        if not changes:
            raise InvalidArgument("No fields to update")

        fields = dict(changes)
        if "title" in fields and (not fields["title"] or not fields["title"].strip()):
            raise InvalidArgument("title cannot be empty")
        if "due_date" in fields:
            fields["due_date"] = _due_date(fields["due_date"])
        if "priority" in fields:
            fields["priority"] = _enum_value(Priority, fields["priority"], "priority")
        if "completed" in fields and not isinstance(fields["completed"], bool):
            raise InvalidArgument("completed must be a boolean")
        if "description" in fields:
            fields["description"] = fields["description"] or ""
        if "assigned_to" in fields:
            fields["assigned_to"] = fields["assigned_to"] or None

        if self.store.find_one(REMINDER, "reminder_id", reminder_id) is None:
            raise NotFound("Reminder not found")

        node = ref(REMINDER, reminder_id)
        with self.store.transaction():
            if "assigned_to" in fields:
                self.store.delete_edge(node, ASSIGNED_TO, to_label=USER)
                if fields["assigned_to"]:
                    self._link_assignee(node, fields["assigned_to"])
            reminder = self.store.update_fields(REMINDER, "reminder_id", reminder_id, fields)

        if reminder is None:
            raise NotFound("Reminder not found")
        return ReminderOut.from_node(reminder)

    def delete_reminder(self, reminder_id: str) -> None:
        with self.store.transaction():
            self.store.delete_node(REMINDER, "reminder_id", reminder_id, detach=True)

    def _upcoming_clauses(self, days: Optional[int], assigned_to: Optional[str]) -> list:
        days = self.upcoming_days if days is None else days
        if isinstance(days, bool) or not isinstance(days, int) or days < 0:
            raise InvalidArgument("days must be a non-negative integer")

        now = self.clock()
        clauses: list = [
            Eq("completed", False),
            Range("due_date", gte=now, lte=now + timedelta(days=days)),
        ]
        if assigned_to:
            clauses.append(Eq("assigned_to", assigned_to))
        return clauses

    def get_upcoming_reminders(self, days: Optional[int] = None, assigned_to: Optional[str] = None) -> list[ReminderOut]:
        clauses = self._upcoming_clauses(days, assigned_to)
        matches = self.store.query(REMINDER, filters=clauses, ordering=[OrderBy("due_date")])
        return [ReminderOut.from_node(m.node) for m in matches]

    def count_upcoming(self, days: Optional[int] = None) -> int:
        return self.store.count(REMINDER, filters=self._upcoming_clauses(days, None))

    def get_next_reminders(self, limit: int = 5) -> list[ReminderOut]:
        """The next `limit` open reminders due from now on, however far out."""
        matches = self.store.query(
            REMINDER,
            filters=[Eq("completed", False), Range("due_date", gte=self.clock())],
            ordering=[OrderBy("due_date")],
            limit=limit,
        )
        return [ReminderOut.from_node(m.node) for m in matches]
