from fastapi import APIRouter, Depends

from vigil.api.deps import get_reminder_engine, get_timeline_engine
from vigil.services.reminders import ReminderEngine, ReminderFilters
from vigil.services.timeline import TimelineEngine, TimelineFilters

router = APIRouter(prefix="/stats", tags=["stats"])

RECENT_EVENTS = 10
NEXT_REMINDERS = 5


@router.get("")
def stats(
    timeline: TimelineEngine = Depends(get_timeline_engine),
    reminders: ReminderEngine = Depends(get_reminder_engine),
):
    by_status = timeline.count_subjects_by_status()

    return {
        "reminders": {
            "totalActive": reminders.count_reminders(ReminderFilters(completed=False)),
            "overdue": reminders.count_reminders(ReminderFilters(overdue=True)),
            "upcoming": reminders.count_upcoming(),
        },
        "lovedOnes": {"total": sum(by_status.values())},
        "eventsByType": timeline.count_events_by_type(),
        "subjectsByStatus": by_status,
        # feed is newest first
        "recentEvents": [e.dump() for e in timeline.get_all_events(TimelineFilters(limit=RECENT_EVENTS))],
        "upcomingReminders": [r.dump() for r in reminders.get_next_reminders(NEXT_REMINDERS)],
    }
