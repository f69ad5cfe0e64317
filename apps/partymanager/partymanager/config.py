from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent
DATA_DIR = BASE_DIR.parent / "data"
DB_PATH = DATA_DIR / "partymanager.db"


def _split_emails(raw: str) -> list[str]:
    return [email.strip().lower() for email in raw.split(",") if email.strip()]


class Config:
    SECRET_KEY = os.environ.get("PARTYMANAGER_SECRET", "dev-secret")
    DB_PATH = os.environ.get("PARTYMANAGER_DB", str(DB_PATH))
    ADMIN_EMAILS = _split_emails(os.environ.get("PARTYMANAGER_ADMIN_EMAILS", ""))
    DEFAULT_MAX_PLAYERS = int(os.environ.get("PARTYMANAGER_DEFAULT_MAX_PLAYERS", "4"))
    SUBMIT_DELAY_SECONDS = float(os.environ.get("PARTYMANAGER_SUBMIT_DELAY", "1.0"))
    EMAIL_DELAY_SECONDS = float(os.environ.get("PARTYMANAGER_EMAIL_DELAY", "2.0"))
    DEBUG = any(
        os.environ.get(name, "").lower() in {"1", "true", "yes"}
        for name in ("PARTYMANAGER_DEBUG", "SQLSTRATUM_DEBUG")
    )
