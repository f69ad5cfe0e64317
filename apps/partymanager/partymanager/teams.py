from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import List, Optional, Sequence

from partymanager.bookings import get_booking, set_booking_status
from partymanager.exceptions import (
    BookingNotFound,
    InvalidStatusTransition,
    TeamNotFound,
    TeamValidationError,
)
from partymanager.models import (
    Booking,
    BookingStatus,
    GamingSystem,
    Role,
    Team,
    TeamStatus,
    utcnow,
)
from partymanager.storage import Collection, RecordStore

logger = logging.getLogger(__name__)

MIN_PLAYERS = 2
MAX_PLAYERS_CHOICES = list(range(2, 9))

TEAM_TRANSITIONS = {
    TeamStatus.draft: {TeamStatus.confirmed},
    TeamStatus.confirmed: {TeamStatus.completed, TeamStatus.draft},
    TeamStatus.completed: {TeamStatus.draft},
}


def can_transition(current: TeamStatus, target: TeamStatus) -> bool:
    return current == target or target in TEAM_TRANSITIONS[current]


def validate_team(
    name: str,
    gaming_system,
    master: Optional[Booking],
    players: Sequence[Booking],
    max_players: int,
) -> dict[str, str]:
    errors: dict[str, str] = {}

    if not (name or "").strip():
        errors["name"] = "Il nome del team è obbligatorio"

    system: Optional[GamingSystem] = None
    try:
        system = GamingSystem(gaming_system)
    except ValueError:
        errors["gaming_system"] = "Seleziona un sistema di gioco valido"

    if not isinstance(max_players, int) or max_players < MIN_PLAYERS:
        errors["max_players"] = f"Il numero massimo di giocatori deve essere almeno {MIN_PLAYERS}"
    elif len(players) > max_players:
        errors["players"] = f"Puoi selezionare al massimo {max_players} giocatori"

    if master is None:
        errors["master"] = "Seleziona un Game Master"
    else:
        if Role.master not in master.roles:
            errors["master"] = "La prenotazione scelta non è disponibile come Game Master"
        elif system is not None and system not in master.gaming_systems:
            errors["master"] = "Il Game Master non gioca a questo sistema"
        elif master.status != BookingStatus.pending:
            errors["master"] = "Il Game Master è già assegnato o cancellato"

    if "players" not in errors:
        seen = set()
        for player in players:
            if master is not None and player.id == master.id:
                message = "Il Game Master non può essere anche giocatore"
            elif player.id in seen:
                message = "Giocatore selezionato più volte"
            elif Role.player not in player.roles:
                message = f"{player.full_name} non è disponibile come giocatore"
            elif system is not None and system not in player.gaming_systems:
                message = f"{player.full_name} non gioca a questo sistema"
            elif player.status != BookingStatus.pending:
                message = f"{player.full_name} è già assegnato o cancellato"
            else:
                seen.add(player.id)
                continue
            errors["players"] = message
            break

    return errors


def _stored_pending(store: RecordStore, booking: Booking, field: str) -> Booking:
    # the caller's copy may be stale; the stored status decides
    try:
        stored = get_booking(store, booking.id)
    except BookingNotFound:
        raise TeamValidationError({field: f"{booking.full_name} non è più disponibile"})
    if stored.status != BookingStatus.pending:
        raise TeamValidationError({field: f"{stored.full_name} è già assegnato o cancellato"})
    return stored


def create_team(
    store: RecordStore,
    name: str,
    gaming_system,
    master: Optional[Booking],
    players: Sequence[Booking] = (),
    max_players: int = 4,
    session_date: Optional[datetime] = None,
) -> Team:
    """Assemble a draft team and mark its bookings as assigned.

    The team row and the booking status updates are written in one
    ``store.transaction()``; if any booking update fails nothing is kept.
    Participants are re-read inside the transaction so a booking already
    assigned to another team is rejected even when the caller holds a
    stale copy.
    """
    players = list(players)
    errors = validate_team(name, gaming_system, master, players, max_players)
    if errors:
        raise TeamValidationError(errors)

    with store.transaction():
        stored_master = _stored_pending(store, master, "master")
        stored_players = [_stored_pending(store, player, "players") for player in players]
        team = Team(
            id=str(uuid.uuid4()),
            name=name.strip(),
            gaming_system=GamingSystem(gaming_system),
            master=stored_master.model_copy(deep=True),
            players=[player.model_copy(deep=True) for player in stored_players],
            max_players=max_players,
            session_date=session_date,
            created_at=utcnow(),
            status=TeamStatus.draft,
        )
        store.append(Collection.teams, team)
        for booking in team.participants:
            set_booking_status(store, booking.id, BookingStatus.assigned)

    logger.info(
        "Team %s (%s) created with master %s and %d/%d players",
        team.id,
        team.gaming_system.value,
        team.master.id,
        len(team.players),
        team.max_players,
    )
    return team


def list_teams(store: RecordStore, status: Optional[TeamStatus] = None) -> List[Team]:
    teams = store.load(Collection.teams)
    if status is None:
        return teams
    return [team for team in teams if team.status == status]


def get_team(store: RecordStore, team_id: str) -> Team:
    for team in store.load(Collection.teams):
        if team.id == team_id:
            return team
    raise TeamNotFound(team_id)


def set_team_status(store: RecordStore, team_id: str, status: TeamStatus) -> Team:
    status = TeamStatus(status)
    team = get_team(store, team_id)
    if not can_transition(team.status, status):
        raise InvalidStatusTransition("team", team.status, status)
    if team.status == status:
        return team
    updated = team.model_copy(update={"status": status})
    if not store.replace(Collection.teams, updated):
        raise TeamNotFound(team_id)
    logger.info("Team %s: %s -> %s", team_id, team.status.value, status.value)
    return updated


def delete_team(store: RecordStore, team_id: str) -> None:
    # embedded bookings keep their assigned status
    if not store.remove(Collection.teams, team_id):
        raise TeamNotFound(team_id)
    logger.info("Team %s deleted", team_id)


def open_slots(team: Team) -> int:
    return max(team.max_players - len(team.players), 0)
