from __future__ import annotations

import logging
import uuid
from collections import Counter
from typing import List, Mapping, Optional

from pydantic import ValidationError

from partymanager.exceptions import (
    BookingNotFound,
    BookingValidationError,
    InvalidStatusTransition,
)
from partymanager.models import Booking, BookingCreate, BookingStatus, field_errors, utcnow
from partymanager.storage import Collection, RecordStore

logger = logging.getLogger(__name__)


BOOKING_TRANSITIONS = {
    BookingStatus.pending: {BookingStatus.assigned, BookingStatus.cancelled},
    BookingStatus.assigned: {BookingStatus.pending},
    BookingStatus.cancelled: set(),
}


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return current == target or target in BOOKING_TRANSITIONS[current]


def validate_booking(fields: Mapping) -> dict[str, str]:
    try:
        BookingCreate.model_validate(dict(fields))
    except ValidationError as exc:
        return field_errors(exc)
    return {}


def create_booking(store: RecordStore, fields: Mapping) -> Booking:
    try:
        booking_in = BookingCreate.model_validate(dict(fields))
    except ValidationError as exc:
        raise BookingValidationError(field_errors(exc)) from exc

    booking = Booking(
        id=str(uuid.uuid4()),
        created_at=utcnow(),
        status=BookingStatus.pending,
        **booking_in.model_dump(),
    )
    store.append(Collection.bookings, booking)
    logger.info("Booking %s created for %s", booking.id, booking.email)
    return booking


def list_bookings(store: RecordStore, status: Optional[BookingStatus] = None) -> List[Booking]:
    bookings = store.load(Collection.bookings)
    if status is None:
        return bookings
    return [booking for booking in bookings if booking.status == status]


def get_booking(store: RecordStore, booking_id: str) -> Booking:
    for booking in store.load(Collection.bookings):
        if booking.id == booking_id:
            return booking
    raise BookingNotFound(booking_id)


def set_booking_status(store: RecordStore, booking_id: str, status: BookingStatus) -> Booking:
    status = BookingStatus(status)
    booking = get_booking(store, booking_id)
    if not can_transition(booking.status, status):
        raise InvalidStatusTransition("booking", booking.status, status)
    if booking.status == status:
        return booking
    updated = booking.model_copy(update={"status": status})
    if not store.replace(Collection.bookings, updated):
        raise BookingNotFound(booking_id)
    logger.info("Booking %s: %s -> %s", booking_id, booking.status.value, status.value)
    return updated


def booking_stats(bookings: List[Booking]) -> dict[str, int]:
    counts = Counter(booking.status for booking in bookings)
    return {
        "total": len(bookings),
        "pending": counts[BookingStatus.pending],
        "assigned": counts[BookingStatus.assigned],
        "cancelled": counts[BookingStatus.cancelled],
    }
