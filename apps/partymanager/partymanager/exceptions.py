"""
Domain exceptions.

Raised by the booking and team services and translated to responses by the
HTTP layer.
"""

from __future__ import annotations


class PartyManagerError(Exception):
    """Base class for all domain errors."""
    pass


# ============ Validation ============

class ValidationFailed(PartyManagerError):
    """Input rejected; ``errors`` maps field names to one message each."""
    def __init__(self, errors: dict[str, str]):
        self.errors = dict(errors)
        super().__init__("; ".join(f"{field}: {msg}" for field, msg in self.errors.items()))


class BookingValidationError(ValidationFailed):
    pass


class TeamValidationError(ValidationFailed):
    pass


# ============ Not found ============

class BookingNotFound(PartyManagerError):
    def __init__(self, booking_id):
        self.booking_id = booking_id
        super().__init__(f"Booking {booking_id} not found")


class TeamNotFound(PartyManagerError):
    def __init__(self, team_id):
        self.team_id = team_id
        super().__init__(f"Team {team_id} not found")


# ============ Status ============

class InvalidStatusTransition(PartyManagerError):
    """Status change outside the allowed transition table."""
    def __init__(self, entity: str, current, target):
        self.entity = entity
        self.current = current
        self.target = target
        super().__init__(
            f"Cannot move {entity} from {getattr(current, 'value', current)} "
            f"to {getattr(target, 'value', target)}"
        )
