from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Optional

from sqlstratum.runner import Runner

from partymanager.config import Config
from partymanager.schema import SCHEMA_SQL


def _connect(db_path: str) -> sqlite3.Connection:
    conn = sqlite3.connect(db_path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


def get_runner(db_path: Optional[str] = None) -> Runner:
    path = Path(db_path or Config.DB_PATH)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = _connect(str(path))
    return Runner(conn)


def init_db(db_path: Optional[str] = None) -> None:
    path = Path(db_path or Config.DB_PATH)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = _connect(str(path))
    try:
        conn.executescript(SCHEMA_SQL)
        conn.commit()
    finally:
        conn.close()
