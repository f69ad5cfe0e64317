"""
Team notification emails.

Templates use ``{{name}}`` placeholders that are replaced literally, once per
recipient. Placeholders outside ``PLACEHOLDERS`` are left as written.
Sending is simulated: every message is rendered and logged, nothing leaves
the process.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from partymanager.models import Booking, EmailMessage, Team

logger = logging.getLogger(__name__)


PLACEHOLDERS = (
    "firstName",
    "lastName",
    "email",
    "teamName",
    "gameSystem",
    "masterName",
    "masterEmail",
    "playersList",
    "sessionDateInfo",
)

WEEKDAYS_IT = ("lunedì", "martedì", "mercoledì", "giovedì", "venerdì", "sabato", "domenica")
MONTHS_IT = (
    "gennaio", "febbraio", "marzo", "aprile", "maggio", "giugno",
    "luglio", "agosto", "settembre", "ottobre", "novembre", "dicembre",
)

UNDEFINED_DATE = "\n- Data da definire"


class EmailTemplate(BaseModel):
    key: str
    name: str
    subject: str
    body: str


INVITATION = EmailTemplate(
    key="invitation",
    name="Invito Team",
    subject="Conferma della tua partecipazione - {{teamName}}",
    body="""Ciao {{firstName}},

Siamo felici di confermarti che sei stato/a selezionato/a per partecipare al team "{{teamName}}" per una sessione di {{gameSystem}}!

**Dettagli del Team:**
- Nome Team: {{teamName}}
- Sistema di Gioco: {{gameSystem}}
- Game Master: {{masterName}} ({{masterEmail}})
- Partecipanti: {{playersList}}
{{sessionDateInfo}}

**Prossimi Passi:**
1. Conferma la tua partecipazione rispondendo a questa email
2. Il Game Master ti contatterà per organizzare i dettagli della sessione
3. Preparati per un'avventura fantastica!

Per qualsiasi domanda, non esitare a contattarci.

Buon gioco!
Il Team di Party Manager

---
Questa email è stata inviata automaticamente dal sistema Party Manager.""",
)

REMINDER = EmailTemplate(
    key="reminder",
    name="Promemoria Sessione",
    subject="Promemoria Sessione - {{teamName}}",
    body="""Ciao {{firstName}},

Ti ricordiamo che la tua sessione di {{gameSystem}} con il team "{{teamName}}" si avvicina!

**Dettagli della Sessione:**
- Team: {{teamName}}
- Sistema: {{gameSystem}}
- Game Master: {{masterName}}
{{sessionDateInfo}}

**Ricorda di:**
- Preparare il tuo personaggio (se necessario)
- Avere a disposizione dadi e materiali
- Essere puntuale all'appuntamento

Ci vediamo al tavolo!
Il Team di Party Manager""",
)

TEMPLATES = {template.key: template for template in (INVITATION, REMINDER)}
CUSTOM = "custom"
TEMPLATE_CHOICES = [(INVITATION.key, INVITATION.name), (REMINDER.key, REMINDER.name), (CUSTOM, "Personalizzato")]


def format_session_date(value: datetime) -> str:
    """Long Italian date with time, e.g. ``sabato 15 marzo 2025 alle ore 20:30``."""
    return (
        f"{WEEKDAYS_IT[value.weekday()]} {value.day} {MONTHS_IT[value.month - 1]} "
        f"{value.year} alle ore {value:%H:%M}"
    )


def format_short_date(value: datetime) -> str:
    return f"{value:%d/%m/%Y}"


def session_date_info(team: Team) -> str:
    if team.session_date is None:
        return UNDEFINED_DATE
    return f"\n- Data Sessione: {format_session_date(team.session_date)}"


def template_values(team: Team, recipient: Booking) -> dict[str, str]:
    return {
        "firstName": recipient.first_name,
        "lastName": recipient.last_name,
        "email": recipient.email,
        "teamName": team.name,
        "gameSystem": team.gaming_system.label,
        "masterName": team.master.full_name,
        "masterEmail": team.master.email,
        "playersList": ", ".join(player.full_name for player in team.players),
        "sessionDateInfo": session_date_info(team),
    }


def render(template: str, team: Team, recipient: Booking) -> str:
    text = template
    for name, value in template_values(team, recipient).items():
        text = text.replace("{{" + name + "}}", value)
    return text


class EmailDraft(BaseModel):
    """Subject and body being edited for one team.

    Picking a built-in template replaces whatever was typed before;
    picking ``custom`` keeps the current text.
    """

    template: str = INVITATION.key
    subject: str = INVITATION.subject
    body: str = INVITATION.body

    def select_template(self, key: str) -> "EmailDraft":
        if key == CUSTOM:
            return self.model_copy(update={"template": CUSTOM})
        template = TEMPLATES[key]
        return EmailDraft(template=key, subject=template.subject, body=template.body)


def compose_team_emails(team: Team, subject: str, body: str) -> List[EmailMessage]:
    return [
        EmailMessage(
            to=participant.email,
            subject=render(subject, team, participant),
            body=render(body, team, participant),
        )
        for participant in team.participants
    ]


async def send_team_emails(
    team: Team,
    subject: str,
    body: str,
    delay: Optional[float] = None,
) -> List[EmailMessage]:
    if delay:
        await asyncio.sleep(delay)
    messages = compose_team_emails(team, subject, body)
    for message in messages:
        logger.info("Email to %s | %s\n%s", message.to, message.subject, message.body)
    logger.info("Sent %d emails for team %s", len(messages), team.id)
    return messages
