from datetime import datetime, timedelta, timezone

from vigil.models import LovedOne


def test_calendar_merges_sources(client, seed):
    seed(LovedOne(id="lo-1", name="Mary", community="Lakeview"))
    now = datetime.now(timezone.utc)

    client.post("/reminders", json={"title": "Court filing", "dueDate": (now + timedelta(days=2)).isoformat()})
    client.post(
        "/timeline/loved-ones/lo-1/events",
        json={"eventType": "Sighting", "description": "seen", "timestamp": (now + timedelta(days=1)).isoformat()},
    )
    client.post("/timeline/loved-ones/lo-1/events", json={"eventType": "NoteAdded", "description": "note"})

    r = client.get("/calendar/events")
    assert r.status_code == 200
    events = r.json()["events"]
    assert [e["title"] for e in events] == ["Mary: Sighting", "Court filing"]
    assert events[0]["extendedProps"]["lovedOneName"] == "Mary"
    assert events[0]["color"] == "#6fcf6f"

    r = client.get("/calendar/events", params={"eventTypes": "reminders"})
    assert [e["type"] for e in r.json()["events"]] == ["reminder"]

    r = client.get("/calendar/events", params={"eventTypes": "timeline"})
    assert [e["type"] for e in r.json()["events"]] == ["timeline"]


def test_calendar_window(client):
    now = datetime.now(timezone.utc)
    client.post("/reminders", json={"title": "soon", "dueDate": (now + timedelta(days=1)).isoformat()})
    client.post("/reminders", json={"title": "later", "dueDate": (now + timedelta(days=20)).isoformat()})

    r = client.get(
        "/calendar/events",
        params={"start": now.isoformat(), "end": (now + timedelta(days=7)).isoformat()},
    )
    assert [e["title"] for e in r.json()["events"]] == ["soon"]


def test_calendar_empty(client):
    r = client.get("/calendar/events")
    assert r.status_code == 200
    assert r.json() == {"events": []}
