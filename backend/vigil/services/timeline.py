"""
Timeline events for LovedOne cases.

Events hang off their subject via (LovedOne)-[:HAS_TIMELINE_EVENT]->(TimelineEvent).
A `Found` event also flips the subject's status to Found; that write shares the
event's transaction through a savepoint, so it commits atomically with the event
when it succeeds and is dropped (and logged) on its own when it fails.
"""

from dataclasses import dataclass
from datetime import datetime
from itertools import groupby
from typing import Any, Callable, Mapping, Optional

import structlog

from vigil.core.clock import as_utc, utcnow
from vigil.core.errors import InvalidArgument, NotFound, VigilError
from vigil.metrics.prometheus import backfill_events_total, found_status_updates_total, timeline_events_created_total
from vigil.models.timeline import EventType
from vigil.schemas import SubjectSummary, SubjectTimeline, TimelineEventOut
from vigil.store.filters import Eq, Join, Lacks, OrderBy, Range
from vigil.store.graph import HAS_TIMELINE_EVENT, LOVED_ONE, TIMELINE_EVENT, GraphStore, ref

logger = structlog.get_logger(__name__)

ALLOWED_EVENT_TYPES: tuple[str, ...] = tuple(t.value for t in EventType)
UPDATABLE_FIELDS = ("description", "location", "metadata")

FOUND_STATUS = "Found"
BACKFILL_ACTOR = "system-backfill"

_SUBJECT_JOIN = Join(edge_type=HAS_TIMELINE_EVENT, label=LOVED_ONE)


@dataclass
class TimelineFilters:
    event_type: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    community: Optional[str] = None
    limit: Optional[int] = None


@dataclass
class BackfillResult:
    created: int
    failed: int
    total: int


def _parse_limit(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise InvalidArgument("Invalid limit value")
    try:
        limit = int(value)
    except (TypeError, ValueError):
        raise InvalidArgument("Invalid limit value")
    if limit < 0 or (isinstance(value, float) and value != limit):
        raise InvalidArgument("Invalid limit value")
    return limit


def _check_metadata(metadata: Any) -> None:
    if metadata is not None and not isinstance(metadata, dict):
        raise InvalidArgument("metadata must be an object")


class TimelineEngine:
    def __init__(self, store: GraphStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    def add_event(
        self,
        subject_id: str,
        event_type: Optional[str],
        description: Optional[str],
        created_by: str = "system",
        timestamp: Optional[datetime] = None,
        location: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> TimelineEventOut:
        if not event_type or not description or not description.strip():
            raise InvalidArgument("eventType and description are required")
        if event_type not in ALLOWED_EVENT_TYPES:
            raise InvalidArgument(f"Invalid eventType. Must be one of: {', '.join(ALLOWED_EVENT_TYPES)}")
        _check_metadata(metadata)

        if self.store.find_one(LOVED_ONE, "id", subject_id) is None:
            raise NotFound("LovedOne not found")

        with self.store.transaction():
            event = self.store.create(
                TIMELINE_EVENT,
                {
                    "subject_id": subject_id,
                    "event_type": event_type,
                    "description": description,
                    "timestamp": as_utc(timestamp) or self.clock(),
                    "created_by": created_by or "system",
                    "location": location or None,
                    "details": metadata,
                },
            )
            self.store.create_edge(ref(LOVED_ONE, subject_id), HAS_TIMELINE_EVENT, ref(TIMELINE_EVENT, event.event_id))

            if event_type == EventType.FOUND.value:
                self._mark_found(subject_id)

        timeline_events_created_total.labels(event_type=event_type).inc()
        logger.info("timeline_event_created", event_id=event.event_id, subject_id=subject_id, event_type=event_type)
        return TimelineEventOut.from_node(event)

    def _mark_found(self, subject_id: str) -> None:
        try:
            with self.store.savepoint():
                self.store.update_fields(LOVED_ONE, "id", subject_id, {"status": FOUND_STATUS})
        except VigilError as exc:
            found_status_updates_total.labels(outcome="failed").inc()
            logger.error(
                "found_status_update_failed",
                subject_id=subject_id,
                error=exc.message,
                details=exc.details,
            )
        else:
            found_status_updates_total.labels(outcome="updated").inc()

    def update_event(self, event_id: str, changes: Mapping[str, Any]) -> TimelineEventOut:
        unknown = sorted(set(changes) - set(UPDATABLE_FIELDS))
        if unknown:
            raise InvalidArgument(f"Fields cannot be updated: {', '.join(unknown)}")
        if not changes:
            raise InvalidArgument("No fields to update")
        if "description" in changes and (not changes["description"] or not changes["description"].strip()):
            raise InvalidArgument("description cannot be empty")
        _check_metadata(changes.get("metadata"))

        if self.store.find_one(TIMELINE_EVENT, "event_id", event_id) is None:
            raise NotFound("Event not found")

        fields = {("details" if name == "metadata" else name): value for name, value in changes.items()}
        with self.store.transaction():
            event = self.store.update_fields(TIMELINE_EVENT, "event_id", event_id, fields)
        if event is None:
            raise NotFound("Event not found")
        return TimelineEventOut.from_node(event)

    def delete_event(self, event_id: str) -> None:
        with self.store.transaction():
            self.store.delete_node(TIMELINE_EVENT, "event_id", event_id, detach=True)

    def get_events_by_subject(self, subject_id: str) -> list[TimelineEventOut]:
        matches = self.store.query(
            TIMELINE_EVENT,
            filters=[Eq("id", subject_id, on="related")],
            ordering=[OrderBy("timestamp")],
            join=_SUBJECT_JOIN,
        )
        return [TimelineEventOut.from_node(m.node) for m in matches]

    def _filters(self, filters: TimelineFilters) -> list:
        out: list = []
        if filters.event_type:
            out.append(Eq("event_type", filters.event_type))
        if filters.start_date or filters.end_date:
            out.append(Range("timestamp", gte=as_utc(filters.start_date), lte=as_utc(filters.end_date)))
        if filters.community:
            out.append(Eq("community", filters.community, on="related"))
        return out

    def get_all_events(self, filters: Optional[TimelineFilters] = None) -> list[TimelineEventOut]:
        """Global feed, newest first, each event carrying its subject summary."""
        filters = filters or TimelineFilters()
        limit = _parse_limit(filters.limit)
        matches = self.store.query(
            TIMELINE_EVENT,
            filters=self._filters(filters),
            ordering=[OrderBy("timestamp", descending=True)],
            limit=limit,
            join=_SUBJECT_JOIN,
        )
        return [TimelineEventOut.from_node(m.node, m.related) for m in matches]

    def get_events_grouped_by_subject(self, filters: Optional[TimelineFilters] = None) -> list[SubjectTimeline]:
        filters = filters or TimelineFilters()
        matches = self.store.query(
            TIMELINE_EVENT,
            filters=self._filters(filters),
            ordering=[
                OrderBy("name", on="related"),
                OrderBy("id", on="related"),
                OrderBy("timestamp"),
            ],
            join=_SUBJECT_JOIN,
        )

        grouped: list[SubjectTimeline] = []
        for _, group in groupby(matches, key=lambda m: m.related.id):
            rows = list(group)
            grouped.append(
                SubjectTimeline(
                    loved_one=SubjectSummary.from_node(rows[0].related),
                    events=[TimelineEventOut.from_node(m.node) for m in rows],
                )
            )
        return grouped

    def count_events_by_type(self) -> dict[str, int]:
        return self.store.count_by(TIMELINE_EVENT, "event_type")

    def count_subjects_by_status(self) -> dict[str, int]:
        """Every LovedOne, with or without history; unset status counts as "unknown"."""
        counts: dict[str, int] = {}
        for status, n in self.store.count_by(LOVED_ONE, "status").items():
            key = status or "unknown"
            counts[key] = counts.get(key, 0) + n
        return counts

    def backfill_case_opened(self) -> BackfillResult:
        """Give every LovedOne without history a single CaseOpened event."""
        subjects = [
            (m.node.id, m.node.name, m.node.community, m.node.date_of_incident)
            for m in self.store.query(LOVED_ONE, filters=[Lacks(HAS_TIMELINE_EVENT)], ordering=[OrderBy("name")])
        ]

        created = 0
        failed = 0
        for subject_id, name, community, date_of_incident in subjects:
            try:
                self.add_event(
                    subject_id,
                    EventType.CASE_OPENED.value,
                    f"Case opened for {name or 'LovedOne'}",
                    created_by=BACKFILL_ACTOR,
                    timestamp=date_of_incident or self.clock(),
                    location=community,
                )
            except VigilError as exc:
                failed += 1
                backfill_events_total.labels(outcome="failed").inc()
                logger.error("backfill_event_failed", subject_id=subject_id, error=exc.message, details=exc.details)
            else:
                created += 1
                backfill_events_total.labels(outcome="created").inc()

        logger.info("backfill_finished", created=created, failed=failed, total=len(subjects))
        return BackfillResult(created=created, failed=failed, total=len(subjects))
