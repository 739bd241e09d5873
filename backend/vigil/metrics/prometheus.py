from prometheus_client import Counter, Histogram

api_request_latency_seconds = Histogram(
    "api_request_latency_seconds",
    "API request latency in seconds",
    ["route", "method", "status"],
)

timeline_events_created_total = Counter(
    "timeline_events_created_total",
    "Total timeline events created",
    ["event_type"],
)

found_status_updates_total = Counter(
    "found_status_updates_total",
    "Subject status updates triggered by Found events",
    ["outcome"],
)

backfill_events_total = Counter(
    "backfill_events_total",
    "CaseOpened events written by timeline backfill",
    ["outcome"],
)

reminders_created_total = Counter(
    "reminders_created_total",
    "Total reminders created",
    ["priority"],
)

reminder_links_total = Counter(
    "reminder_links_total",
    "Reminder relationship writes",
    ["edge_type", "outcome"],
)

calendar_events_served_total = Counter(
    "calendar_events_served_total",
    "Calendar display events returned to callers",
    ["type"],
)
