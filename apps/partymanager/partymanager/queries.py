from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlstratum import SELECT, INSERT, UPDATE, Table, col


kv_store = Table(
    "kv_store",
    col("key", str),
    col("value", str),
    col("updated_at", str),
)


def get_value(runner, key: str) -> Optional[str]:
    q = (
        SELECT(kv_store.c.value.AS("value"))
        .FROM(kv_store)
        .WHERE(kv_store.c.key == key)
        .LIMIT(1)
    )
    row = runner.fetch_one(q)
    if row is None:
        return None
    return row["value"]


def key_exists(runner, key: str) -> bool:
    q = SELECT(kv_store.c.key.AS("key")).FROM(kv_store).WHERE(kv_store.c.key == key).LIMIT(1)
    return runner.fetch_one(q) is not None


def set_value(runner, key: str, value: str) -> None:
    now = datetime.now(timezone.utc).isoformat()
    if key_exists(runner, key):
        runner.execute(
            UPDATE(kv_store)
            .SET(value=value, updated_at=now)
            .WHERE(kv_store.c.key == key)
        )
    else:
        runner.execute(INSERT(kv_store).VALUES(key=key, value=value, updated_at=now))
