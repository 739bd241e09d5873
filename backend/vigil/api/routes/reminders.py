from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from vigil.api.deps import get_actor, get_reminder_engine
from vigil.core.errors import NotFound
from vigil.services.reminders import ReminderEngine, ReminderFilters

router = APIRouter(prefix="/reminders", tags=["reminders"])


class ReminderCreate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    # title/dueDate are checked by the engine so a missing one is a 400, not a 422
    title: Optional[str] = None
    due_date: Optional[datetime] = None
    description: Optional[str] = None
    related_to_type: Optional[str] = None
    related_to_id: Optional[str] = None
    assigned_to: Optional[str] = None
    priority: Optional[str] = None
    reminder_type: Optional[str] = None


class ReminderUpdate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: Optional[str] = None
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    priority: Optional[str] = None
    completed: Optional[bool] = None
    assigned_to: Optional[str] = None


@router.get("")
def list_reminders(
    engine: ReminderEngine = Depends(get_reminder_engine),
    assigned_to: Optional[str] = Query(default=None, alias="assignedTo"),
    related_to_type: Optional[str] = Query(default=None, alias="relatedToType"),
    related_to_id: Optional[str] = Query(default=None, alias="relatedToId"),
    completed: Optional[bool] = Query(default=None),
    priority: Optional[str] = Query(default=None),
    start_date: Optional[datetime] = Query(default=None, alias="startDate"),
    end_date: Optional[datetime] = Query(default=None, alias="endDate"),
    overdue: bool = Query(default=False),
):
    reminders = engine.get_reminders(
        ReminderFilters(
            assigned_to=assigned_to,
            related_to_type=related_to_type,
            related_to_id=related_to_id,
            completed=completed,
            priority=priority,
            start_date=start_date,
            end_date=end_date,
            overdue=overdue,
        )
    )
    return {"reminders": [r.dump() for r in reminders]}


@router.get("/upcoming")
def upcoming_reminders(
    engine: ReminderEngine = Depends(get_reminder_engine),
    days: Optional[int] = Query(default=None),
    assigned_to: Optional[str] = Query(default=None, alias="assignedTo"),
):
    reminders = engine.get_upcoming_reminders(days=days, assigned_to=assigned_to)
    return {"reminders": [r.dump() for r in reminders]}


@router.get("/{reminder_id}")
def get_reminder(reminder_id: str, engine: ReminderEngine = Depends(get_reminder_engine)):
    reminder = engine.get_reminder_by_id(reminder_id)
    if reminder is None:
        raise NotFound("Reminder not found")
    return {"reminder": reminder.dump()}


@router.post("", status_code=201)
def create_reminder(
    body: ReminderCreate,
    engine: ReminderEngine = Depends(get_reminder_engine),
    actor: str = Depends(get_actor),
):
    reminder = engine.create_reminder(
        title=body.title,
        due_date=body.due_date,
        created_by=actor,
        description=body.description,
        related_to_type=body.related_to_type,
        related_to_id=body.related_to_id,
        assigned_to=body.assigned_to,
        priority=body.priority,
        reminder_type=body.reminder_type,
    )
    return {"reminder": reminder.dump()}


@router.put("/{reminder_id}")
def update_reminder(
    reminder_id: str,
    body: ReminderUpdate,
    engine: ReminderEngine = Depends(get_reminder_engine),
):
    reminder = engine.update_reminder(reminder_id, body.model_dump(exclude_unset=True))
    return {"reminder": reminder.dump()}


@router.delete("/{reminder_id}")
def delete_reminder(reminder_id: str, engine: ReminderEngine = Depends(get_reminder_engine)):
    engine.delete_reminder(reminder_id)
    return {"success": True}
