import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from sqlalchemy import JSON, Column, DateTime
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field, SQLModel


class EventType(str, Enum):
    CASE_OPENED = "CaseOpened"
    MISSING_REPORTED = "MissingReported"
    LAST_SEEN = "LastSeen"
    SIGHTING = "Sighting"
    STATUS_CHANGED = "StatusChanged"
    SEARCH_DISPATCHED = "SearchDispatched"
    TIP_RECEIVED = "TipReceived"
    NOTE_ADDED = "NoteAdded"
    FOUND = "Found"
    CASE_CLOSED = "CaseClosed"


class TimelineEvent(SQLModel, table=True):
    __tablename__ = "timeline_events"

    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True, index=True)
    subject_id: str = Field(index=True)

    event_type: str = Field(index=True)
    description: str
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_type=DateTime(timezone=True),
        index=True,
    )
    created_by: str = Field(default="system")

    location: Optional[str] = None
    # `metadata` is taken by SQLModel itself, so the attribute is `details`
    details: Optional[Any] = Field(
        default=None,
        sa_column=Column("metadata", JSON().with_variant(JSONB(), "postgresql"), nullable=True),
    )
