from __future__ import annotations

from datetime import datetime, timezone

import pytest

from partymanager import queries
from partymanager.models import Booking, BookingStatus, GamingSystem, Role, Team
from partymanager.storage import Collection, MemoryRecordStore


def _booking(booking_id="b1", **overrides):
    data = dict(
        id=booking_id,
        email="mario@example.com",
        phone="333 1234567",
        first_name="Mario",
        last_name="Rossi",
        pronouns="lui/lui",
        roles=[Role.master, Role.player],
        gaming_systems=[GamingSystem.dnd],
        created_at=datetime(2025, 1, 10, 9, 30, tzinfo=timezone.utc),
    )
    data.update(overrides)
    return Booking(**data)


def test_booking_round_trip_keeps_dates_as_instants(store):
    booking = _booking()
    store.append(Collection.bookings, booking)

    loaded = store.load(Collection.bookings)

    assert loaded == [booking]
    assert isinstance(loaded[0].created_at, datetime)
    assert '"createdAt": "2025-01-10T09:30:00Z"' in store.data[Collection.bookings.value]


def test_team_round_trip_with_embedded_bookings(store):
    master = _booking("m1")
    player = _booking("p1", roles=[Role.player])
    team = Team(
        id="t1",
        name="Dragons",
        gaming_system=GamingSystem.dnd,
        master=master,
        players=[player],
        max_players=4,
        session_date=datetime(2025, 3, 15, 20, 30),
        created_at=datetime(2025, 1, 11, tzinfo=timezone.utc),
    )
    store.append(Collection.teams, team)

    loaded = store.load(Collection.teams)[0]

    assert loaded == team
    assert loaded.session_date == datetime(2025, 3, 15, 20, 30)
    assert loaded.master.first_name == "Mario"


def test_team_without_session_date_omits_field(store):
    team = Team(
        id="t1",
        name="Dragons",
        gaming_system=GamingSystem.dnd,
        master=_booking("m1"),
        created_at=datetime(2025, 1, 11, tzinfo=timezone.utc),
    )
    store.append(Collection.teams, team)

    assert "sessionDate" not in store.data[Collection.teams.value]
    assert store.load(Collection.teams)[0].session_date is None


def test_load_preserves_insertion_order(store):
    for booking_id in ("c", "a", "b"):
        store.append(Collection.bookings, _booking(booking_id))

    assert [b.id for b in store.load(Collection.bookings)] == ["c", "a", "b"]


def test_corrupted_payload_loads_empty():
    store = MemoryRecordStore({Collection.bookings.value: "{not json"})
    assert store.load(Collection.bookings) == []


def test_payload_with_invalid_records_loads_empty():
    store = MemoryRecordStore({Collection.bookings.value: '[{"id": "x"}]'})
    assert store.load(Collection.bookings) == []


def test_missing_collection_loads_empty(store):
    assert store.load(Collection.teams) == []


def test_replace_and_remove_report_missing_ids(store):
    booking = _booking()
    store.append(Collection.bookings, booking)

    updated = booking.model_copy(update={"status": BookingStatus.cancelled})
    assert store.replace(Collection.bookings, updated) is True
    assert store.load(Collection.bookings)[0].status == BookingStatus.cancelled

    assert store.replace(Collection.bookings, _booking("other")) is False
    assert store.remove(Collection.bookings, "other") is False
    assert store.remove(Collection.bookings, booking.id) is True
    assert store.load(Collection.bookings) == []


def test_memory_transaction_rolls_back_on_error(store):
    store.append(Collection.bookings, _booking("keep"))
    try:
        with store.transaction():
            store.append(Collection.bookings, _booking("drop"))
            raise RuntimeError("boom")
    except RuntimeError:
        pass

    assert [b.id for b in store.load(Collection.bookings)] == ["keep"]


def test_sqlite_store_round_trip(sqlite_store):
    booking = _booking()
    sqlite_store.append(Collection.bookings, booking)
    sqlite_store.append(Collection.bookings, _booking("b2"))

    assert sqlite_store.load(Collection.bookings)[0] == booking
    assert sqlite_store.remove(Collection.bookings, "b2") is True
    assert [b.id for b in sqlite_store.load(Collection.bookings)] == ["b1"]


def test_sqlite_store_corrupted_value_loads_empty(sqlite_store):
    queries.set_value(sqlite_store.runner, Collection.teams.value, "garbage")
    assert sqlite_store.load(Collection.teams) == []


def test_sqlite_nested_transaction_joins_outer(sqlite_store):
    with pytest.raises(RuntimeError):
        with sqlite_store.transaction():
            sqlite_store.append(Collection.bookings, _booking())
            with sqlite_store.transaction():
                sqlite_store.append(Collection.bookings, _booking("b2"))
            raise RuntimeError("abort")

    assert sqlite_store.load(Collection.bookings) == []

    with sqlite_store.transaction():
        with sqlite_store.transaction():
            sqlite_store.append(Collection.bookings, _booking())
    assert [b.id for b in sqlite_store.load(Collection.bookings)] == ["b1"]
