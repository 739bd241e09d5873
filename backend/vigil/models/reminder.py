import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class ReminderType(str, Enum):
    FOLLOWUP = "followup"
    COURT = "court"
    CHECKIN = "checkin"
    ANNIVERSARY = "anniversary"
    OTHER = "other"


class RelatedToType(str, Enum):
    CASE = "case"
    LOVED_ONE = "lovedOne"


class Reminder(SQLModel, table=True):
    __tablename__ = "reminders"

    reminder_id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True, index=True)
    title: str
    description: str = ""
    due_date: datetime = Field(sa_type=DateTime(timezone=True), index=True)
    created_by: str = Field(default="system")

    related_to_type: Optional[str] = Field(default=None, index=True)  # case/lovedOne
    related_to_id: Optional[str] = Field(default=None, index=True)
    assigned_to: Optional[str] = Field(default=None, index=True)  # user email

    priority: str = Field(default=Priority.MEDIUM.value, index=True)
    reminder_type: str = Field(default=ReminderType.OTHER.value)
    completed: bool = Field(default=False, index=True)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_type=DateTime(timezone=True),
    )
