from __future__ import annotations

from typing import Iterable, Optional
from starlette.requests import Request

from partymanager.config import Config
from partymanager.models import Identity


def resolve_identity(
    name: Optional[str],
    email: str,
    image: Optional[str] = None,
    admin_emails: Optional[Iterable[str]] = None,
) -> Identity:
    allowed = {e.strip().lower() for e in (Config.ADMIN_EMAILS if admin_emails is None else admin_emails)}
    email = email.strip()
    return Identity(name=name or None, email=email, image=image or None, is_admin=email.lower() in allowed)


def login_user(request: Request, identity: Identity) -> None:
    request.session.clear()
    request.session["identity"] = identity.model_dump()


def logout_user(request: Request) -> None:
    request.session.clear()


def get_session_identity(request: Request) -> Optional[Identity]:
    data = request.session.get("identity")
    if not data:
        return None
    return Identity.model_validate(data)


def require_admin(request: Request) -> Optional[Identity]:
    identity = get_session_identity(request)
    if identity is None or not identity.is_admin:
        return None
    return identity
