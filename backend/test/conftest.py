"""
Shared fixtures: a store on an in-memory MongoDB (mongomock) with a frozen
clock, and a Flask test client wired to that store.
Run from the repo root:  pytest
"""

from datetime import datetime, timezone

import mongomock
import pytest

from db import MongoStatePersistence
from services.store import DispatchStore, set_store

FIXED_NOW = datetime(2026, 3, 10, 14, 0, tzinfo=timezone.utc)


def fixed_clock():
    return FIXED_NOW


@pytest.fixture
def collection():
    return mongomock.MongoClient()["pulsepoint_eris"]["state"]


@pytest.fixture
def persistence(collection):
    return MongoStatePersistence(collection)


@pytest.fixture
def store(persistence):
    s = DispatchStore(persistence=persistence, sync_delay=60, clock=fixed_clock)
    yield s
    if s._sync_timer is not None:
        s._sync_timer.cancel()


@pytest.fixture
def client(store):
    from app import app

    app.config["TESTING"] = True
    set_store(store)
    with app.test_client() as c:
        yield c
    set_store(None)


def login(client, username, password="password"):
    r = client.post("/api/auth/login", json={"username": username, "password": password})
    assert r.status_code == 200, r.data
    return r.get_json()


def new_call(**overrides):
    data = {
        "callerName": "Alice Walker",
        "phone": "555-0000",
        "location": "12 Elm St",
        "description": "Elderly man fainted in the kitchen.",
        "priority": 2,
    }
    data.update(overrides)
    return data
