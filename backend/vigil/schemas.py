from datetime import datetime
from typing import Annotated, Any, Literal, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, JsonValue
from pydantic.alias_generators import to_camel

from vigil.core.clock import as_utc

# free-form key/value bag carried on timeline events and calendar entries
Metadata = dict[str, JsonValue]

UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def dump(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class SubjectSummary(CamelModel):
    id: str
    name: Optional[str] = None
    community: Optional[str] = None
    status: Optional[str] = None

    @classmethod
    def from_node(cls, node) -> "SubjectSummary":
        return cls(id=node.id, name=node.name, community=node.community, status=node.status)


class TimelineEventOut(CamelModel):
    event_id: str
    subject_id: str
    event_type: str
    description: str
    timestamp: UtcDatetime
    created_by: str
    location: Optional[str] = None
    metadata: Optional[Metadata] = None
    loved_one: Optional[SubjectSummary] = None

    @classmethod
    def from_node(cls, node, subject=None) -> "TimelineEventOut":
        return cls(
            event_id=node.event_id,
            subject_id=node.subject_id,
            event_type=node.event_type,
            description=node.description,
            timestamp=node.timestamp,
            created_by=node.created_by,
            location=node.location,
            metadata=node.details,
            loved_one=SubjectSummary.from_node(subject) if subject is not None else None,
        )


class SubjectTimeline(CamelModel):
    loved_one: SubjectSummary
    events: list[TimelineEventOut]


class ReminderOut(CamelModel):
    reminder_id: str
    title: str
    description: str = ""
    due_date: UtcDatetime
    created_by: str
    related_to_type: Optional[str] = None
    related_to_id: Optional[str] = None
    assigned_to: Optional[str] = None
    priority: str
    reminder_type: str
    completed: bool
    created_at: UtcDatetime

    @classmethod
    def from_node(cls, node) -> "ReminderOut":
        return cls(
            reminder_id=node.reminder_id,
            title=node.title,
            description=node.description or "",
            due_date=node.due_date,
            created_by=node.created_by,
            related_to_type=node.related_to_type,
            related_to_id=node.related_to_id,
            assigned_to=node.assigned_to,
            priority=node.priority,
            reminder_type=node.reminder_type,
            completed=node.completed,
            created_at=node.created_at,
        )


class CalendarDisplayEvent(CamelModel):
    id: str
    title: str
    start: UtcDatetime
    end: UtcDatetime
    all_day: bool = False
    type: Literal["reminder", "timeline"]
    color: str
    text_color: str = "#fff"
    extended_props: Metadata = {}
