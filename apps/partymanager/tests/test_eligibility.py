from __future__ import annotations

from partymanager.bookings import list_bookings, set_booking_status
from partymanager.eligibility import eligible_masters, eligible_players, pending_bookings
from partymanager.models import BookingStatus, GamingSystem, Role


def test_scenario_master_and_player_lists(store, make_booking):
    a = make_booking(roles=["master", "player"], systems=["DnD"])
    b = make_booking(roles=["player"], systems=["DnD"])
    bookings = list_bookings(store)

    assert [x.id for x in eligible_masters(bookings, GamingSystem.dnd)] == [a.id]
    assert [x.id for x in eligible_players(bookings, GamingSystem.dnd, exclude_id=a.id)] == [b.id]


def test_dual_role_booking_appears_in_both_lists(store, make_booking):
    a = make_booking(roles=["master", "player"], systems=["DnD"])
    bookings = list_bookings(store)

    assert [x.id for x in eligible_masters(bookings, "DnD")] == [a.id]
    assert [x.id for x in eligible_players(bookings, "DnD")] == [a.id]


def test_filters_by_system_when_selected(store, make_booking):
    make_booking(roles=["master"], systems=["Pathfinder"])
    make_booking(roles=["player"], systems=["Vampiri"])
    cthulhu = make_booking(roles=["player"], systems=["Call of Cthulhu", "DnD"])
    bookings = list_bookings(store)

    assert eligible_masters(bookings, GamingSystem.dnd) == []
    assert [x.id for x in eligible_players(bookings, GamingSystem.dnd)] == [cthulhu.id]


def test_no_system_selected_keeps_every_role_match(store, make_booking):
    m1 = make_booking(roles=["master"], systems=["Pathfinder"])
    m2 = make_booking(roles=["master"], systems=["Daggerheart"])
    p1 = make_booking(roles=["player"], systems=["Vampiri"])
    bookings = list_bookings(store)

    assert [x.id for x in eligible_masters(bookings)] == [m1.id, m2.id]
    assert [x.id for x in eligible_players(bookings, None)] == [p1.id]


def test_non_pending_bookings_are_excluded(store, make_booking):
    assigned = make_booking(roles=["master", "player"])
    cancelled = make_booking(roles=["master", "player"])
    pending = make_booking(roles=["master", "player"])
    set_booking_status(store, assigned.id, BookingStatus.assigned)
    set_booking_status(store, cancelled.id, BookingStatus.cancelled)
    bookings = list_bookings(store)

    assert [x.id for x in pending_bookings(bookings)] == [pending.id]
    assert [x.id for x in eligible_masters(bookings, "DnD")] == [pending.id]
    assert [x.id for x in eligible_players(bookings, "DnD")] == [pending.id]


def test_results_never_lack_the_required_role(store, make_booking):
    for roles in (["master"], ["player"], ["master", "player"], ["player"], ["master"]):
        make_booking(roles=roles, systems=["DnD", "Daggerheart"])
    bookings = list_bookings(store)

    assert all(Role.master in b.roles for b in eligible_masters(bookings, "DnD"))
    assert all(Role.player in b.roles for b in eligible_players(bookings, "DnD"))
    assert len(eligible_masters(bookings, "DnD")) == 3
    assert len(eligible_players(bookings, "DnD")) == 3
