from datetime import datetime, timedelta, timezone

from vigil.core.config import settings
from vigil.models import LovedOne

ADMIN = {"X-Admin-Key": settings.admin_api_key}


def _post_event(client, loved_one_id, **body):
    return client.post(f"/timeline/loved-ones/{loved_one_id}/events", json=body)


def test_create_and_list_for_subject(client, seed):
    seed(LovedOne(id="lo-1", name="Mary", community="Lakeview", status="Missing"))

    r = _post_event(
        client,
        "lo-1",
        eventType="Sighting",
        description="Seen at the market",
        location="Main St",
        metadata={"source": "volunteer"},
    )
    assert r.status_code == 201, r.text
    event = r.json()["event"]
    assert event["eventType"] == "Sighting"
    assert event["subjectId"] == "lo-1"
    assert event["createdBy"] == "system"
    assert event["metadata"] == {"source": "volunteer"}

    r = client.get("/timeline/loved-ones/lo-1/events")
    assert [e["eventId"] for e in r.json()["events"]] == [event["eventId"]]


def test_found_event_flips_status(client, seed):
    seed(LovedOne(id="lo-1", name="Mary", status="Missing"))

    r = _post_event(client, "lo-1", eventType="Found", description="Located safe")
    assert r.status_code == 201

    [event] = client.get("/timeline/events").json()["events"]
    assert event["lovedOne"]["status"] == "Found"


def test_create_rejections(client, seed):
    seed(LovedOne(id="lo-1", name="Mary"))

    r = _post_event(client, "lo-1", description="no type")
    assert r.status_code == 400
    assert r.json()["error"] == "eventType and description are required"

    r = _post_event(client, "lo-1", eventType="Rumour", description="text")
    assert r.status_code == 400
    assert r.json()["error"].startswith("Invalid eventType. Must be one of:")

    r = _post_event(client, "ghost", eventType="Sighting", description="text")
    assert r.status_code == 404
    assert r.json() == {"error": "LovedOne not found"}

    assert client.get("/timeline/loved-ones/lo-1/events").json()["events"] == []


def test_feed_grouping_and_limit(client, seed):
    seed(LovedOne(id="lo-1", name="Mary", community="Lakeview"), LovedOne(id="lo-2", name="Ann"))
    now = datetime.now(timezone.utc)
    _post_event(client, "lo-1", eventType="CaseOpened", description="m1", timestamp=(now - timedelta(days=3)).isoformat())
    _post_event(client, "lo-2", eventType="CaseOpened", description="a1", timestamp=(now - timedelta(days=2)).isoformat())
    _post_event(client, "lo-1", eventType="Sighting", description="m2", timestamp=(now - timedelta(days=1)).isoformat())

    r = client.get("/timeline/events")
    assert [e["description"] for e in r.json()["events"]] == ["m2", "a1", "m1"]

    r = client.get("/timeline/events", params={"limit": 1})
    assert [e["description"] for e in r.json()["events"]] == ["m2"]

    r = client.get("/timeline/events", params={"community": "Lakeview", "eventType": "CaseOpened"})
    assert [e["description"] for e in r.json()["events"]] == ["m1"]

    assert client.get("/timeline/events", params={"limit": "lots"}).status_code == 400

    r = client.get("/timeline/events/grouped")
    grouped = r.json()["grouped"]
    assert [g["lovedOne"]["name"] for g in grouped] == ["Ann", "Mary"]
    assert [e["description"] for e in grouped[1]["events"]] == ["m1", "m2"]


def test_update_and_delete(client, seed):
    seed(LovedOne(id="lo-1", name="Mary"))
    event = _post_event(client, "lo-1", eventType="NoteAdded", description="draft").json()["event"]
    eid = event["eventId"]

    r = client.put(f"/timeline/events/{eid}", json={"description": "final", "location": "Office"})
    assert r.status_code == 200
    assert r.json()["event"]["description"] == "final"
    assert r.json()["event"]["location"] == "Office"

    r = client.put(f"/timeline/events/{eid}", json={"description": "   "})
    assert r.status_code == 400

    # immutable fields are dropped, leaving nothing to update
    r = client.put(f"/timeline/events/{eid}", json={"eventType": "Found"})
    assert r.status_code == 400

    assert client.put("/timeline/events/missing", json={"description": "x"}).status_code == 404

    assert client.delete(f"/timeline/events/{eid}").json() == {"success": True}
    assert client.delete(f"/timeline/events/{eid}").json() == {"success": True}
    assert client.get("/timeline/loved-ones/lo-1/events").json()["events"] == []


def test_backfill_requires_admin_key(client, seed):
    seed(LovedOne(id="lo-1", name="Mary"))

    assert client.post("/timeline/backfill").status_code == 401
    assert client.post("/timeline/backfill", headers={"X-Admin-Key": "wrong"}).status_code == 401
    assert client.get("/timeline/loved-ones/lo-1/events").json()["events"] == []


def test_backfill_end_to_end(client, seed):
    incident = datetime(2026, 3, 1, 8, 30, tzinfo=timezone.utc)
    seed(
        LovedOne(id="lo-1", name="Mary", community="Lakeview", date_of_incident=incident),
        LovedOne(id="lo-2", name="Ann"),
    )
    _post_event(client, "lo-2", eventType="Sighting", description="already tracked")

    r = client.post("/timeline/backfill", headers=ADMIN)
    assert r.status_code == 200
    body = r.json()
    assert body["created"] == 1
    assert body["failed"] == 0
    assert body["total"] == 1
    assert "1" in body["message"]

    [event] = client.get("/timeline/loved-ones/lo-1/events").json()["events"]
    assert event["eventType"] == "CaseOpened"
    assert event["description"] == "Case opened for Mary"
    assert event["createdBy"] == "system-backfill"
    assert event["timestamp"].startswith("2026-03-01T08:30:00")

    again = client.post("/timeline/backfill", headers=ADMIN).json()
    assert (again["created"], again["total"]) == (0, 0)
