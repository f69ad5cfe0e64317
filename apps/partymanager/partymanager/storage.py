"""
Record storage.

Bookings and teams are kept as two JSON arrays, each under its own key of a
key/value store. ``RecordStore`` is the port the domain services depend on;
``SqliteRecordStore`` keeps the arrays in the ``kv_store`` table and
``MemoryRecordStore`` keeps them in a dict.

Loading never raises on a damaged payload: the collection reads as empty and
a warning is logged.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from enum import Enum
from typing import Iterator, List, Optional, Type

from pydantic import TypeAdapter, ValidationError

from partymanager import queries
from partymanager.models import Booking, StoredModel, Team

logger = logging.getLogger(__name__)


class Collection(str, Enum):
    bookings = "rpg-bookings"
    teams = "rpg-teams"


RECORD_TYPES: dict[Collection, Type[StoredModel]] = {
    Collection.bookings: Booking,
    Collection.teams: Team,
}


def serialize(records: List[StoredModel]) -> str:
    return json.dumps([record.to_record() for record in records], ensure_ascii=False)


def deserialize(collection: Collection, payload: Optional[str]) -> list:
    if not payload:
        return []
    adapter = TypeAdapter(List[RECORD_TYPES[collection]])
    try:
        return adapter.validate_json(payload)
    except ValidationError as exc:
        logger.warning("Discarding unreadable %s payload: %s", collection.value, exc)
        return []


class RecordStore(ABC):
    """Load/append/replace/remove over the two named collections."""

    @abstractmethod
    def _read(self, collection: Collection) -> Optional[str]:
        ...

    @abstractmethod
    def _write(self, collection: Collection, payload: str) -> None:
        ...

    @abstractmethod
    @contextmanager
    def transaction(self) -> Iterator[None]:
        ...

    def load(self, collection: Collection) -> list:
        return deserialize(collection, self._read(collection))

    def save(self, collection: Collection, records: list) -> None:
        self._write(collection, serialize(records))

    def append(self, collection: Collection, record: StoredModel) -> None:
        records = self.load(collection)
        records.append(record)
        self.save(collection, records)

    def replace(self, collection: Collection, record: StoredModel) -> bool:
        records = self.load(collection)
        for index, existing in enumerate(records):
            if existing.id == record.id:
                records[index] = record
                self.save(collection, records)
                return True
        return False

    def remove(self, collection: Collection, record_id: str) -> bool:
        records = self.load(collection)
        kept = [record for record in records if record.id != record_id]
        if len(kept) == len(records):
            return False
        self.save(collection, kept)
        return True


class SqliteRecordStore(RecordStore):
    def __init__(self, runner):
        self.runner = runner
        self._depth = 0

    def _read(self, collection: Collection) -> Optional[str]:
        return queries.get_value(self.runner, collection.value)

    def _write(self, collection: Collection, payload: str) -> None:
        queries.set_value(self.runner, collection.value, payload)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        # nested calls join the outermost transaction
        if self._depth:
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
            return
        self._depth = 1
        try:
            with self.runner.transaction():
                yield
        finally:
            self._depth = 0

    def close(self) -> None:
        self.runner.connection.close()


class MemoryRecordStore(RecordStore):
    def __init__(self, initial: Optional[dict] = None):
        self.data: dict[str, str] = dict(initial or {})

    def _read(self, collection: Collection) -> Optional[str]:
        return self.data.get(collection.value)

    def _write(self, collection: Collection, payload: str) -> None:
        self.data[collection.value] = payload

    @contextmanager
    def transaction(self) -> Iterator[None]:
        snapshot = dict(self.data)
        try:
            yield
        except Exception:
            self.data = snapshot
            raise
