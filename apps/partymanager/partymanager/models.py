from __future__ import annotations

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
)
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError


EMAIL_RE = re.compile(r"\S+@\S+\.\S+")


class Role(str, Enum):
    master = "master"
    player = "player"

    @property
    def label(self) -> str:
        return ROLE_LABELS[self]


ROLE_LABELS = {
    Role.master: "Game Master",
    Role.player: "Giocatore",
}


class GamingSystem(str, Enum):
    dnd = "DnD"
    daggerheart = "Daggerheart"
    vampiri = "Vampiri"
    call_of_cthulhu = "Call of Cthulhu"
    pathfinder = "Pathfinder"

    @property
    def label(self) -> str:
        return GAMING_SYSTEM_LABELS[self]


GAMING_SYSTEM_LABELS = {
    GamingSystem.dnd: "Dungeons & Dragons",
    GamingSystem.daggerheart: "Daggerheart",
    GamingSystem.vampiri: "Vampiri: La Masquerade",
    GamingSystem.call_of_cthulhu: "Call of Cthulhu",
    GamingSystem.pathfinder: "Pathfinder",
}


class BookingStatus(str, Enum):
    pending = "pending"
    assigned = "assigned"
    cancelled = "cancelled"

    @property
    def label(self) -> str:
        return {"pending": "In attesa", "assigned": "Assegnato", "cancelled": "Cancellato"}[self.value]


class TeamStatus(str, Enum):
    draft = "draft"
    confirmed = "confirmed"
    completed = "completed"

    @property
    def label(self) -> str:
        return {"draft": "Bozza", "confirmed": "Confermato", "completed": "Completato"}[self.value]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StoredModel(BaseModel):
    """Base for records persisted as JSON with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Booking(StoredModel):
    id: str
    email: str
    phone: str
    first_name: str
    last_name: str
    pronouns: str
    roles: List[Role]
    gaming_systems: List[GamingSystem]
    created_at: datetime
    status: BookingStatus = BookingStatus.pending

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Team(StoredModel):
    id: str
    name: str
    gaming_system: GamingSystem
    master: Booking
    players: List[Booking] = Field(default_factory=list)
    max_players: int = Field(default=4, ge=2)
    session_date: Optional[datetime] = None
    created_at: datetime
    status: TeamStatus = TeamStatus.draft

    @property
    def participants(self) -> List[Booking]:
        return [self.master, *self.players]


REQUIRED_MESSAGES = {
    "email": "Email è obbligatoria",
    "phone": "Numero di telefono è obbligatorio",
    "first_name": "Nome è obbligatorio",
    "last_name": "Cognome è obbligatorio",
    "pronouns": "Pronomi sono obbligatori",
    "roles": "Seleziona almeno un ruolo",
    "gaming_systems": "Seleziona almeno un sistema di gioco",
}

INVALID_MESSAGES = {
    "email": "Email non valida",
    "roles": "Ruolo non valido",
    "gaming_systems": "Sistema di gioco non valido",
}


class BookingCreate(BaseModel):
    model_config = ConfigDict(validate_default=True)

    email: str = ""
    phone: str = ""
    first_name: str = ""
    last_name: str = ""
    pronouns: str = ""
    roles: List[Role] = Field(default_factory=list)
    gaming_systems: List[GamingSystem] = Field(default_factory=list)

    @field_validator("email", "phone", "first_name", "last_name", "pronouns", mode="before")
    @classmethod
    def _require_text(cls, value, info: ValidationInfo):
        text = "" if value is None else str(value).strip()
        if not text:
            raise PydanticCustomError("required", REQUIRED_MESSAGES[info.field_name])
        return text

    @field_validator("email")
    @classmethod
    def _validate_email(cls, value: str):
        if not EMAIL_RE.search(value):
            raise PydanticCustomError("invalid", INVALID_MESSAGES["email"])
        return value

    @field_validator("roles", "gaming_systems", mode="before")
    @classmethod
    def _coerce_list(cls, value):
        if value is None:
            return []
        if isinstance(value, (str, Enum)):
            return [value]
        return list(value)

    @field_validator("roles", "gaming_systems")
    @classmethod
    def _require_selection(cls, value: list, info: ValidationInfo):
        if not value:
            raise PydanticCustomError("required", REQUIRED_MESSAGES[info.field_name])
        # keep first occurrence order
        return list(dict.fromkeys(value))


def field_errors(exc: ValidationError) -> dict[str, str]:
    """Collapse a pydantic error list into one message per top-level field."""
    errors: dict[str, str] = {}
    for err in exc.errors():
        field = str(err["loc"][0]) if err["loc"] else "__root__"
        if err["type"] in {"required", "invalid"}:
            message = err["msg"]
        elif err["type"] == "missing":
            message = REQUIRED_MESSAGES.get(field, err["msg"])
        else:
            message = INVALID_MESSAGES.get(field, err["msg"])
        errors.setdefault(field, message)
    return errors


class Identity(BaseModel):
    name: Optional[str] = None
    email: str
    image: Optional[str] = None
    is_admin: bool = False


class EmailMessage(BaseModel):
    to: str
    subject: str
    body: str
