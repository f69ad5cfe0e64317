from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from partymanager.app import app, get_store
from partymanager.bookings import create_booking
from partymanager.config import Config
from partymanager.db import get_runner, init_db
from partymanager.storage import MemoryRecordStore, SqliteRecordStore

ADMIN_EMAIL = "admin@example.com"


@pytest.fixture
def store():
    return MemoryRecordStore()


@pytest.fixture
def sqlite_store(tmp_path):
    db_path = str(tmp_path / "partymanager.db")
    init_db(db_path)
    store = SqliteRecordStore(get_runner(db_path))
    yield store
    store.close()


@pytest.fixture
def make_booking(store):
    counter = {"n": 0}

    def _make(roles=("player",), systems=("DnD",), target=None, **overrides):
        counter["n"] += 1
        n = counter["n"]
        fields = {
            "email": f"user{n}@example.com",
            "phone": f"+39 333 000 00{n:02d}",
            "first_name": f"Nome{n}",
            "last_name": f"Cognome{n}",
            "pronouns": "loro/loro",
            "roles": list(roles),
            "gaming_systems": list(systems),
        }
        fields.update(overrides)
        return create_booking(target or store, fields)

    return _make


@pytest.fixture
def client(store, monkeypatch):
    monkeypatch.setattr(Config, "SUBMIT_DELAY_SECONDS", 0)
    monkeypatch.setattr(Config, "EMAIL_DELAY_SECONDS", 0)
    monkeypatch.setattr(Config, "ADMIN_EMAILS", [ADMIN_EMAIL])

    def _store_override():
        yield store

    app.dependency_overrides[get_store] = _store_override
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def sign_in(client, email, name="Test User"):
    return client.post(
        "/auth/signin",
        data={"email": email, "name": name, "callbackUrl": "/"},
        follow_redirects=False,
    )


@pytest.fixture
def admin_client(client):
    sign_in(client, ADMIN_EMAIL, name="Admin Root")
    return client
