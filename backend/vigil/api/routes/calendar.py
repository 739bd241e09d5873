from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from vigil.api.deps import get_calendar
from vigil.services.calendar import DEFAULT_INCLUDE, CalendarAggregator

router = APIRouter(prefix="/calendar", tags=["calendar"])


@router.get("/events")
def calendar_events(
    calendar: CalendarAggregator = Depends(get_calendar),
    start: Optional[datetime] = Query(default=None),
    end: Optional[datetime] = Query(default=None),
    assigned_to: Optional[str] = Query(default=None, alias="assignedTo"),
    related_to_id: Optional[str] = Query(default=None, alias="relatedToId"),
    event_types: Optional[str] = Query(default=None, alias="eventTypes"),
):
    # eventTypes is comma separated, e.g. "reminders,timeline"
    include = {t.strip() for t in event_types.split(",") if t.strip()} if event_types else DEFAULT_INCLUDE

    events = calendar.get_calendar_events(
        start=start,
        end=end,
        assigned_to=assigned_to,
        related_to_id=related_to_id,
        include_types=include,
    )
    return {"events": [e.dump() for e in events]}
