"""
Test script for calls API (POST /api/calls, GET /api/calls, lifecycle routes).
Run from the repo root:  pytest backend/test/test_calls_api.py
Uses an in-memory MongoDB; no .env needed.
"""

from conftest import login, new_call
from services import ai


def test_post_create_call(client, store):
    """POST /api/calls returns 201 and the created call, attributed to the session user."""
    login(client, "dispatch1")
    r = client.post("/api/calls", json=new_call())
    assert r.status_code == 201, f"Expected 201, got {r.status_code}: {r.data}"
    data = r.get_json()
    assert data["outcome"] == "logged"
    assert data["call"]["id"] == 4
    assert data["call"]["status"] == "Pending"
    assert data["call"]["priority"] == 2
    assert data["message"] == "Emergency call (ID: 4) logged successfully!"
    assert store.audit_log[0].user == "dispatch1"


def test_post_requires_fields(client):
    """POST /api/calls with missing fields returns 400 listing them."""
    r = client.post("/api/calls", json={"callerName": "A"})
    assert r.status_code == 400
    assert r.get_json()["missing"] == ["phone", "location", "description"]


def test_post_rejects_non_text_fields(client, store):
    """A number where text is expected is a 400, not a server error."""
    r = client.post("/api/calls", json=new_call(phone=5550000))
    assert r.status_code == 400
    assert r.get_json()["invalid"] == ["phone"]
    assert len(store.calls) == 3


def test_duplicate_returns_409_then_force(client):
    r = client.post("/api/calls", json=new_call(phone="555-5678"))
    assert r.status_code == 409
    assert [c["id"] for c in r.get_json()["duplicates"]] == [2]

    r = client.post("/api/calls", json={**new_call(phone="555-5678"), "force": True})
    assert r.status_code == 201
    assert r.get_json()["call"]["id"] == 4


def test_link_duplicate_report(client):
    r = client.post("/api/calls/2/link", json=new_call(phone="555-5678", description="He is getting worse."))
    assert r.status_code == 200
    assert "He is getting worse." in r.get_json()["notes"][0]


def test_get_calls_views(client):
    """GET /api/calls returns 200 and a list; views narrow it."""
    r = client.get("/api/calls")
    assert r.status_code == 200
    assert len(r.get_json()) == 3

    assert [c["id"] for c in client.get("/api/calls?view=pending").get_json()] == [2]
    assert [c["id"] for c in client.get("/api/calls?view=active").get_json()] == [1]
    assert [c["id"] for c in client.get("/api/calls?view=open").get_json()] == [1, 2]
    assert client.get("/api/calls?view=pending&priority=1").get_json() == []
    assert client.get("/api/calls?view=bogus").status_code == 400


def test_get_call_not_found(client):
    r = client.get("/api/calls/99")
    assert r.status_code == 404
    assert "not found" in r.get_json()["error"]


def test_assign_and_progress(client, store):
    r = client.post("/api/calls/2/assign", json={"teamId": 1})
    assert r.status_code == 200
    assert r.get_json()["status"] == "Dispatched"

    r = client.post("/api/calls/2/status", json={"status": "On Scene"})
    assert r.status_code == 200
    assert store.get_team(1).status.value == "On Scene"

    r = client.post("/api/calls/2/status", json={"status": "Pending"})
    assert r.status_code == 409
    assert r.get_json()["currentStatus"] == "On Scene"


def test_status_with_team_id_links_team(client, store):
    r = client.post("/api/calls/2/status", json={"status": "Dispatched", "teamId": 1})
    assert r.status_code == 200
    assert r.get_json()["assignedTeamId"] == 1

    client.post("/api/calls/2/status", json={"status": "On Scene"})
    client.post("/api/calls/2/status", json={"status": "Completed"})
    assert store.get_team(1).status.value == "Available"

    r = client.post("/api/calls/1/status", json={"status": "On Scene", "teamId": 1})
    assert r.status_code == 409


def test_assign_busy_team_conflict(client):
    r = client.post("/api/calls/2/assign", json={"teamId": 2})
    assert r.status_code == 409


def test_assign_requires_team_id(client):
    assert client.post("/api/calls/2/assign", json={}).status_code == 400


def test_suggest_priority(client, monkeypatch):
    monkeypatch.setattr(ai, "_generate", lambda prompt, model=None: "1")
    r = client.post("/api/calls/suggest-priority", json={"description": "Not breathing, no pulse."})
    assert r.get_json() == {"priority": 1}


def test_suggest_priority_failure_is_soft(client, monkeypatch):
    def boom(prompt, model=None):
        raise RuntimeError("quota")

    monkeypatch.setattr(ai, "_generate", boom)
    r = client.post("/api/calls/suggest-priority", json={"description": "Not breathing, no pulse."})
    assert r.status_code == 200
    assert r.get_json()["priority"] is None
    assert r.get_json()["error"].startswith("Error:")


def test_verify_location(client, monkeypatch):
    monkeypatch.setattr(ai, "_generate", lambda prompt, model=None: "Narrow lane, use north gate.")
    r = client.post("/api/calls/verify-location", json={"location": "12 Elm St"})
    assert r.get_json()["text"] == "Narrow lane, use north gate."
    assert client.post("/api/calls/verify-location", json={"location": " "}).status_code == 400
    assert client.post("/api/calls/verify-location", json={"location": 12}).status_code == 400

