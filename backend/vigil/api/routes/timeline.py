from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from vigil.api.deps import get_actor, get_timeline_engine, require_admin_key
from vigil.schemas import Metadata
from vigil.services.timeline import TimelineEngine, TimelineFilters

router = APIRouter(prefix="/timeline", tags=["timeline"])


class TimelineEventCreate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    event_type: Optional[str] = None
    description: Optional[str] = None
    timestamp: Optional[datetime] = None
    location: Optional[str] = None
    metadata: Optional[Metadata] = None


class TimelineEventUpdate(BaseModel):
    # eventType/timestamp are immutable; anything else in the body is ignored
    description: Optional[str] = None
    location: Optional[str] = None
    metadata: Optional[Metadata] = None


def _filters(
    event_type: Optional[str] = Query(default=None, alias="eventType"),
    start_date: Optional[datetime] = Query(default=None, alias="startDate"),
    end_date: Optional[datetime] = Query(default=None, alias="endDate"),
    community: Optional[str] = Query(default=None),
) -> TimelineFilters:
    return TimelineFilters(event_type=event_type, start_date=start_date, end_date=end_date, community=community)


@router.get("/events")
def list_events(
    engine: TimelineEngine = Depends(get_timeline_engine),
    filters: TimelineFilters = Depends(_filters),
    limit: Optional[int] = Query(default=None),
):
    filters.limit = limit
    events = engine.get_all_events(filters)
    return {"events": [e.dump() for e in events]}


@router.get("/events/grouped")
def grouped_events(
    engine: TimelineEngine = Depends(get_timeline_engine),
    filters: TimelineFilters = Depends(_filters),
):
    grouped = engine.get_events_grouped_by_subject(filters)
    return {"grouped": [g.dump() for g in grouped]}


@router.get("/loved-ones/{loved_one_id}/events")
def loved_one_events(loved_one_id: str, engine: TimelineEngine = Depends(get_timeline_engine)):
    events = engine.get_events_by_subject(loved_one_id)
    return {"events": [e.dump() for e in events]}


@router.post("/loved-ones/{loved_one_id}/events", status_code=201)
def create_event(
    loved_one_id: str,
    body: TimelineEventCreate,
    engine: TimelineEngine = Depends(get_timeline_engine),
    actor: str = Depends(get_actor),
):
    event = engine.add_event(
        loved_one_id,
        body.event_type,
        body.description,
        created_by=actor,
        timestamp=body.timestamp,
        location=body.location,
        metadata=body.metadata,
    )
    return {"event": event.dump()}


@router.put("/events/{event_id}")
def update_event(
    event_id: str,
    body: TimelineEventUpdate,
    engine: TimelineEngine = Depends(get_timeline_engine),
):
    event = engine.update_event(event_id, body.model_dump(exclude_unset=True))
    return {"event": event.dump()}


@router.delete("/events/{event_id}")
def delete_event(event_id: str, engine: TimelineEngine = Depends(get_timeline_engine)):
    engine.delete_event(event_id)
    return {"success": True}


@router.post("/backfill", dependencies=[Depends(require_admin_key)])
def backfill(engine: TimelineEngine = Depends(get_timeline_engine)):
    result = engine.backfill_case_opened()
    return {
        "message": f"Created {result.created} CaseOpened events for existing LovedOnes",
        "created": result.created,
        "failed": result.failed,
        "total": result.total,
    }
