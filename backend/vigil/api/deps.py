from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlmodel import Session

from vigil.core.config import settings
from vigil.db.session import get_session
from vigil.services.calendar import CalendarAggregator
from vigil.services.reminders import ReminderEngine
from vigil.services.timeline import TimelineEngine
from vigil.store.graph import GraphStore


def get_store(session: Session = Depends(get_session)) -> GraphStore:
    return GraphStore(session)


def get_timeline_engine(store: GraphStore = Depends(get_store)) -> TimelineEngine:
    return TimelineEngine(store)


def get_reminder_engine(store: GraphStore = Depends(get_store)) -> ReminderEngine:
    return ReminderEngine(store, upcoming_days=settings.upcoming_days_default)


def get_calendar(
    timeline: TimelineEngine = Depends(get_timeline_engine),
    reminders: ReminderEngine = Depends(get_reminder_engine),
) -> CalendarAggregator:
    return CalendarAggregator(timeline, reminders, important_types=settings.calendar_timeline_types)


def get_actor(x_user_email: Optional[str] = Header(default=None)) -> str:
    # identity comes from the auth proxy in front of us
    return x_user_email or "system"


def require_admin_key(x_admin_key: Optional[str] = Header(default=None)) -> None:
    if not x_admin_key or x_admin_key != settings.admin_api_key:
        raise HTTPException(status_code=401, detail="Invalid admin key")
