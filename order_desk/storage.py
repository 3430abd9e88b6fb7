"""Record stores standing in for the hosted relational backend."""
from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, MutableMapping, Optional, Protocol, Sequence

from .timeutil import Clock, format_timestamp, parse_timestamp, utc_now

LOGGER = logging.getLogger(__name__)

Row = Dict[str, Any]

LEADS_TABLE = "leads"
ORDERS_TABLE = "orders"
PRODUCTS_TABLE = "products"
MODERATORS_TABLE = "moderators"


class RecordNotFoundError(LookupError):
    """Raised when an update or delete targets an id that does not exist."""


class RecordStore(Protocol):
    """Operations consumed from the persisted-record backend."""

    def insert_many(self, table: str, rows: Sequence[Mapping[str, Any]]) -> List[Row]:  # pragma: no cover - protocol
        """Insert rows and return them as stored (ids and timestamps filled in)."""

    def select_all(self, table: str) -> List[Row]:  # pragma: no cover - protocol
        """Return every row, newest ``created_at`` first."""

    def update(self, table: str, record_id: str, values: Mapping[str, Any]) -> Row:  # pragma: no cover - protocol
        ...

    def update_many(self, table: str, record_ids: Iterable[str], values: Mapping[str, Any]) -> List[Row]:  # pragma: no cover - protocol
        ...

    def delete(self, table: str, record_id: str) -> None:  # pragma: no cover - protocol
        ...


def _created_sort_key(row: Mapping[str, Any]) -> float:
    created = parse_timestamp(row.get("created_at"))
    return created.timestamp() if created else float("-inf")


class InMemoryStore:
    """Dictionary backed store with serial ids, mainly for tests and dry runs."""

    def __init__(
        self,
        tables: Optional[Mapping[str, Iterable[Mapping[str, Any]]]] = None,
        *,
        clock: Clock = utc_now,
    ) -> None:
        self._clock = clock
        self._lock = threading.RLock()
        self._tables: Dict[str, List[Row]] = {}
        self._next_id = 1
        for table, rows in (tables or {}).items():
            self._tables[table] = [dict(row) for row in rows]
            for row in self._tables[table]:
                if str(row.get("id", "")).isdigit():
                    self._next_id = max(self._next_id, int(row["id"]) + 1)

    def _table(self, table: str) -> List[Row]:
        return self._tables.setdefault(table, [])

    def _find(self, table: str, record_id: str) -> Row:
        for row in self._table(table):
            if str(row.get("id")) == str(record_id):
                return row
        raise RecordNotFoundError(f"No record '{record_id}' in table '{table}'")

    def insert_many(self, table: str, rows: Sequence[Mapping[str, Any]]) -> List[Row]:
        stored: List[Row] = []
        with self._lock:
            for row in rows:
                record = dict(row)
                if record.get("id") in (None, ""):
                    record["id"] = str(self._next_id)
                    self._next_id += 1
                if not record.get("created_at"):
                    record["created_at"] = format_timestamp(self._clock())
                self._table(table).append(record)
                stored.append(copy.deepcopy(record))
            self._commit()
        LOGGER.debug("Inserted %s rows into %s", len(stored), table)
        return stored

    def insert(self, table: str, row: Mapping[str, Any]) -> Row:
        return self.insert_many(table, [row])[0]

    def select_all(self, table: str) -> List[Row]:
        with self._lock:
            rows = [copy.deepcopy(row) for row in self._table(table)]
        rows.sort(key=_created_sort_key, reverse=True)
        return rows

    def update(self, table: str, record_id: str, values: Mapping[str, Any]) -> Row:
        with self._lock:
            row = self._find(table, record_id)
            row.update(values)
            self._commit()
            return copy.deepcopy(row)

    def update_many(self, table: str, record_ids: Iterable[str], values: Mapping[str, Any]) -> List[Row]:
        with self._lock:
            targets = [self._find(table, record_id) for record_id in record_ids]
            for row in targets:
                row.update(values)
            self._commit()
            updated = [copy.deepcopy(row) for row in targets]
        LOGGER.debug("Updated %s rows in %s", len(updated), table)
        return updated

    def delete(self, table: str, record_id: str) -> None:
        with self._lock:
            row = self._find(table, record_id)
            self._table(table).remove(row)
            self._commit()

    def _commit(self) -> None:
        """Hook for persistent subclasses; called with the lock held."""


class JsonFileStore(InMemoryStore):
    """Store persisted to a single JSON document after every write."""

    def __init__(self, path: str | Path, *, clock: Clock = utc_now) -> None:
        self.path = Path(path)
        tables: MutableMapping[str, List[Row]] = {}
        if self.path.exists():
            text = self.path.read_text(encoding="utf-8")
            if text.strip():
                tables = json.loads(text)
        super().__init__(tables, clock=clock)

    def _commit(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        handle, temp_name = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(handle, "w", encoding="utf-8") as stream:
                json.dump(self._tables, stream, ensure_ascii=False, indent=2)
            os.replace(temp_name, self.path)
        except BaseException:
            Path(temp_name).unlink(missing_ok=True)
            raise


__all__ = [
    "LEADS_TABLE",
    "ORDERS_TABLE",
    "PRODUCTS_TABLE",
    "MODERATORS_TABLE",
    "RecordNotFoundError",
    "RecordStore",
    "InMemoryStore",
    "JsonFileStore",
]
