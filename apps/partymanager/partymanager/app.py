from __future__ import annotations

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional
from urllib.parse import quote

from fastapi import FastAPI, Request, Depends, HTTPException
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from starlette.middleware.sessions import SessionMiddleware

from partymanager.auth import get_session_identity, login_user, logout_user, resolve_identity
from partymanager.bookings import (
    booking_stats,
    create_booking,
    list_bookings,
    set_booking_status,
    validate_booking,
)
from partymanager.config import BASE_DIR, Config
from partymanager.db import get_runner, init_db
from partymanager.eligibility import eligible_masters, eligible_players, pending_bookings
from partymanager.emails import (
    CUSTOM,
    TEMPLATE_CHOICES,
    TEMPLATES,
    EmailDraft,
    compose_team_emails,
    format_session_date,
    format_short_date,
    send_team_emails,
)
from partymanager.exceptions import (
    BookingNotFound,
    BookingValidationError,
    InvalidStatusTransition,
    TeamNotFound,
    TeamValidationError,
)
from partymanager.models import (
    BookingStatus,
    GamingSystem,
    Role,
    TeamStatus,
)
from partymanager.storage import SqliteRecordStore
from partymanager.teams import (
    MAX_PLAYERS_CHOICES,
    create_team,
    delete_team,
    get_team,
    list_teams,
    open_slots,
    set_team_status,
)


def configure_logging() -> None:
    if Config.DEBUG:
        # sqlstratum only logs statements when its own flag is set too
        os.environ.setdefault("SQLSTRATUM_DEBUG", "1")
        logging.basicConfig(level=logging.DEBUG)
        logging.getLogger("sqlstratum").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.INFO)


configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(lifespan=lifespan)
app.add_middleware(SessionMiddleware, secret_key=Config.SECRET_KEY, same_site="lax")

templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))
templates.env.filters["long_date"] = format_session_date
templates.env.filters["short_date"] = format_short_date
templates.env.globals.update(
    roles=list(Role),
    gaming_systems=list(GamingSystem),
    booking_statuses=list(BookingStatus),
    team_statuses=list(TeamStatus),
    open_slots=open_slots,
)


def get_store():
    store = SqliteRecordStore(get_runner())
    try:
        yield store
    finally:
        store.close()


def render(request: Request, template_name: str, status_code: int = 200, **context):
    return templates.TemplateResponse(
        request,
        template_name,
        {
            "current_user": get_session_identity(request),
            **context,
        },
        status_code=status_code,
    )


def _admin_denied(request: Request):
    identity = get_session_identity(request)
    if identity is None:
        return RedirectResponse(
            url=f"/auth/signin?callbackUrl={quote(request.url.path)}",
            status_code=303,
        )
    if not identity.is_admin:
        return render(request, "auth/access_denied.html", status_code=403)
    return None


def _parse_enum(enum_cls, value: Optional[str]):
    if not value:
        return None
    try:
        return enum_cls(value)
    except ValueError:
        return None


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def _booking_fields_from_form(form) -> dict:
    return {
        "email": (form.get("email") or "").strip(),
        "phone": (form.get("phone") or "").strip(),
        "first_name": (form.get("first_name") or "").strip(),
        "last_name": (form.get("last_name") or "").strip(),
        "pronouns": (form.get("pronouns") or "").strip(),
        "roles": form.getlist("roles"),
        "gaming_systems": form.getlist("gaming_systems"),
    }


def _prefill_from_identity(request: Request) -> dict:
    identity = get_session_identity(request)
    if identity is None:
        return {}
    name_parts = (identity.name or "").split(" ")
    return {
        "email": identity.email,
        "first_name": name_parts[0],
        "last_name": " ".join(name_parts[1:]),
    }


# ============ Public booking form ============

@app.get("/", response_class=HTMLResponse)
def index(request: Request):
    return render(request, "public/index.html", form_data=_prefill_from_identity(request), errors={})


@app.post("/bookings")
async def submit_booking(request: Request, store=Depends(get_store)):
    form = await request.form()
    fields = _booking_fields_from_form(form)

    errors = validate_booking(fields)
    if errors:
        return render(request, "public/index.html", form_data=fields, errors=errors)

    await asyncio.sleep(Config.SUBMIT_DELAY_SECONDS)
    try:
        booking = create_booking(store, fields)
    except BookingValidationError as exc:
        return render(request, "public/index.html", form_data=fields, errors=exc.errors)
    return render(request, "public/booking_done.html", booking=booking)


# ============ Sign-in ============

@app.get("/auth/signin", response_class=HTMLResponse)
def signin(request: Request, callbackUrl: str = "/"):
    return render(request, "auth/signin.html", callback_url=callbackUrl)


@app.post("/auth/signin")
async def signin_submit(request: Request):
    form = await request.form()
    email = (form.get("email") or "").strip()
    callback_url = form.get("callbackUrl") or "/"
    if not callback_url.startswith("/"):
        callback_url = "/"
    if not email:
        return render(request, "auth/signin.html", callback_url=callback_url, error="Email è obbligatoria")

    identity = resolve_identity(form.get("name"), email, form.get("image"))
    login_user(request, identity)
    logger.info("Signed in %s (admin=%s)", identity.email, identity.is_admin)
    return RedirectResponse(url=callback_url, status_code=303)


@app.get("/auth/signout")
def signout(request: Request):
    logout_user(request)
    return RedirectResponse(url="/", status_code=303)


@app.get("/auth/access-denied", response_class=HTMLResponse)
def access_denied(request: Request):
    return render(request, "auth/access_denied.html", status_code=403)


# ============ Admin ============

@app.get("/admin", response_class=HTMLResponse)
def admin_dashboard(
    request: Request,
    booking_status: Optional[str] = None,
    team_status: Optional[str] = None,
    store=Depends(get_store),
):
    denied = _admin_denied(request)
    if denied:
        return denied

    bookings = list_bookings(store)
    booking_filter = _parse_enum(BookingStatus, booking_status)
    team_filter = _parse_enum(TeamStatus, team_status)
    teams = list_teams(store)

    return render(
        request,
        "admin/dashboard.html",
        stats=booking_stats(bookings),
        team_count=len(teams),
        pending_count=len(pending_bookings(bookings)),
        bookings=[b for b in bookings if booking_filter is None or b.status == booking_filter],
        teams=[t for t in teams if team_filter is None or t.status == team_filter],
        booking_status=booking_filter.value if booking_filter else "",
        team_status=team_filter.value if team_filter else "",
    )


@app.post("/admin/bookings/{booking_id}/status")
async def admin_booking_status(booking_id: str, request: Request, store=Depends(get_store)):
    denied = _admin_denied(request)
    if denied:
        return denied

    form = await request.form()
    status = _parse_enum(BookingStatus, form.get("status"))
    if status is None:
        raise HTTPException(status_code=400, detail="Unknown booking status")
    try:
        set_booking_status(store, booking_id, status)
    except BookingNotFound:
        raise HTTPException(status_code=404, detail="Booking not found")
    except InvalidStatusTransition as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return RedirectResponse(url="/admin", status_code=303)


def _team_form(request: Request, store, form_data: dict, errors: Optional[dict] = None):
    bookings = list_bookings(store)
    system = _parse_enum(GamingSystem, form_data.get("gaming_system"))
    master_id = form_data.get("master_id") or None
    return render(
        request,
        "admin/team_form.html",
        form_data=form_data,
        errors=errors or {},
        masters=eligible_masters(bookings, system),
        players=eligible_players(bookings, system, exclude_id=master_id),
        max_players_choices=MAX_PLAYERS_CHOICES,
    )


@app.get("/admin/teams/new", response_class=HTMLResponse)
def admin_team_new(
    request: Request,
    system: Optional[str] = None,
    master: Optional[str] = None,
    store=Depends(get_store),
):
    denied = _admin_denied(request)
    if denied:
        return denied
    form_data = {
        "name": "",
        "gaming_system": system or "",
        "master_id": master or "",
        "player_ids": [],
        "max_players": Config.DEFAULT_MAX_PLAYERS,
        "session_date": "",
    }
    return _team_form(request, store, form_data)


@app.post("/admin/teams")
async def admin_team_create(request: Request, store=Depends(get_store)):
    denied = _admin_denied(request)
    if denied:
        return denied

    form = await request.form()
    max_raw = form.get("max_players") or str(Config.DEFAULT_MAX_PLAYERS)
    form_data = {
        "name": (form.get("name") or "").strip(),
        "gaming_system": form.get("gaming_system") or "",
        "master_id": form.get("master_id") or "",
        "player_ids": form.getlist("player_ids"),
        "max_players": int(max_raw) if max_raw.isdigit() else 0,
        "session_date": form.get("session_date") or "",
    }

    by_id = {booking.id: booking for booking in list_bookings(store)}
    errors = {}
    master = by_id.get(form_data["master_id"])
    players = []
    for player_id in form_data["player_ids"]:
        if player_id not in by_id:
            errors["players"] = "Giocatore non trovato"
            break
        players.append(by_id[player_id])
    session_date = _parse_datetime(form_data["session_date"])
    if form_data["session_date"] and session_date is None:
        errors["session_date"] = "Data non valida"
    if errors:
        return _team_form(request, store, form_data, errors)

    try:
        create_team(
            store,
            name=form_data["name"],
            gaming_system=form_data["gaming_system"],
            master=master,
            players=players,
            max_players=form_data["max_players"],
            session_date=session_date,
        )
    except TeamValidationError as exc:
        return _team_form(request, store, form_data, exc.errors)
    return RedirectResponse(url="/admin", status_code=303)


@app.post("/admin/teams/{team_id}/status")
async def admin_team_status(team_id: str, request: Request, store=Depends(get_store)):
    denied = _admin_denied(request)
    if denied:
        return denied

    form = await request.form()
    status = _parse_enum(TeamStatus, form.get("status"))
    if status is None:
        raise HTTPException(status_code=400, detail="Unknown team status")
    try:
        set_team_status(store, team_id, status)
    except TeamNotFound:
        raise HTTPException(status_code=404, detail="Team not found")
    except InvalidStatusTransition as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return RedirectResponse(url="/admin", status_code=303)


@app.post("/admin/teams/{team_id}/delete")
def admin_team_delete(team_id: str, request: Request, store=Depends(get_store)):
    denied = _admin_denied(request)
    if denied:
        return denied
    try:
        delete_team(store, team_id)
    except TeamNotFound:
        raise HTTPException(status_code=404, detail="Team not found")
    return RedirectResponse(url="/admin", status_code=303)


def _email_page(request: Request, team, draft: EmailDraft, sent=None):
    previews = compose_team_emails(team, draft.subject, draft.body)
    return render(
        request,
        "admin/email.html",
        team=team,
        draft=draft,
        template_choices=TEMPLATE_CHOICES,
        preview=previews[0],
        recipients=previews,
        sent=sent,
    )


@app.get("/admin/teams/{team_id}/email", response_class=HTMLResponse)
def admin_team_email(
    team_id: str,
    request: Request,
    template: str = "invitation",
    store=Depends(get_store),
):
    denied = _admin_denied(request)
    if denied:
        return denied
    try:
        team = get_team(store, team_id)
    except TeamNotFound:
        raise HTTPException(status_code=404, detail="Team not found")
    if template not in TEMPLATES:
        template = "invitation"
    return _email_page(request, team, EmailDraft().select_template(template))


@app.post("/admin/teams/{team_id}/email", response_class=HTMLResponse)
async def admin_team_email_submit(team_id: str, request: Request, store=Depends(get_store)):
    denied = _admin_denied(request)
    if denied:
        return denied
    try:
        team = get_team(store, team_id)
    except TeamNotFound:
        raise HTTPException(status_code=404, detail="Team not found")

    form = await request.form()
    template = form.get("template") or CUSTOM
    if template != CUSTOM and template not in TEMPLATES:
        template = CUSTOM
    draft = EmailDraft(
        template=form.get("current_template") or CUSTOM,
        subject=form.get("subject") or "",
        body=form.get("body") or "",
    )
    action = form.get("action") or "preview"

    if action == "select":
        # reselecting a built-in template discards the edited text
        return _email_page(request, team, draft.select_template(template))
    if action == "send":
        sent = await send_team_emails(team, draft.subject, draft.body, delay=Config.EMAIL_DELAY_SECONDS)
        return _email_page(request, team, draft, sent=sent)
    return _email_page(request, team, draft.model_copy(update={"template": template}))
