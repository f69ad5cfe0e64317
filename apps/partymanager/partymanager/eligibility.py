"""Which pending bookings can fill the master and player seats of a new team."""

from __future__ import annotations

from typing import Iterable, List, Optional

from partymanager.models import Booking, BookingStatus, GamingSystem, Role


def pending_bookings(bookings: Iterable[Booking]) -> List[Booking]:
    return [booking for booking in bookings if booking.status == BookingStatus.pending]


def _plays(booking: Booking, system: Optional[GamingSystem]) -> bool:
    return not system or system in booking.gaming_systems


def eligible_masters(bookings: Iterable[Booking], system: Optional[GamingSystem] = None) -> List[Booking]:
    return [
        booking
        for booking in pending_bookings(bookings)
        if Role.master in booking.roles and _plays(booking, system)
    ]


def eligible_players(
    bookings: Iterable[Booking],
    system: Optional[GamingSystem] = None,
    exclude_id: Optional[str] = None,
) -> List[Booking]:
    # a booking holding both roles is listed here and in eligible_masters;
    # exclude_id drops the master already picked for the team
    return [
        booking
        for booking in pending_bookings(bookings)
        if Role.player in booking.roles
        and booking.id != exclude_id
        and _plays(booking, system)
    ]
