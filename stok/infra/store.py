# stok/infra/store.py
"""
Key-value store behind the repositories.

The core only needs four whole collections and one scalar:

- ``get(collection)`` returns the stored records (possibly empty)
- ``set(collection, records)`` replaces the collection wholesale
- ``get_scalar`` / ``set_scalar`` / ``delete_scalar`` for single values

Implementations:
- SqliteStore: JSON payloads in SQLite (schema from ``migrations``)
- MemoryStore: in-memory dict, used by the tests
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

from .db import connect
from .logger import log_database_operation
from .migrations import apply_migrations


STOCK = "stock"
CASES = "cases"
HISTORY = "history"
CHECKLISTS = "checklists"
USER = "user"


class KeyValueStore(Protocol):
    def get(self, collection: str) -> List[Dict[str, Any]]: ...

    def set(self, collection: str, records: List[Dict[str, Any]]) -> None: ...

    def get_scalar(self, key: str) -> Optional[str]: ...

    def set_scalar(self, key: str, value: str) -> None: ...

    def delete_scalar(self, key: str) -> None: ...

    def clear(self) -> None: ...


class SqliteStore:
    def __init__(self, db_path: str):
        self.db_path = db_path
        apply_migrations(db_path)

    def get(self, collection: str) -> List[Dict[str, Any]]:
        with connect(self.db_path) as c:
            row = c.execute("SELECT payload FROM collection WHERE name = ?", (collection,)).fetchone()
        if not row or not row[0]:
            return []
        data = json.loads(row[0])
        return data if isinstance(data, list) else []

    def set(self, collection: str, records: List[Dict[str, Any]]) -> None:
        payload = json.dumps(list(records), ensure_ascii=False)
        with connect(self.db_path) as c:
            c.execute(
                """
                INSERT INTO collection (name, payload, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(name) DO UPDATE SET
                    payload=excluded.payload,
                    updated_at=excluded.updated_at
                """,
                (collection, payload, datetime.now().isoformat(timespec="seconds")),
            )
        log_database_operation(collection, "SET", len(records))

    def get_scalar(self, key: str) -> Optional[str]:
        with connect(self.db_path) as c:
            row = c.execute("SELECT value FROM scalar WHERE key = ?", (key,)).fetchone()
            return row[0] if row else None

    def set_scalar(self, key: str, value: str) -> None:
        with connect(self.db_path) as c:
            c.execute(
                """
                INSERT INTO scalar (key, value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value=excluded.value,
                    updated_at=excluded.updated_at
                """,
                (key, value, datetime.now().isoformat(timespec="seconds")),
            )
        log_database_operation("scalar", "SET", 1, key=key)

    def delete_scalar(self, key: str) -> None:
        with connect(self.db_path) as c:
            c.execute("DELETE FROM scalar WHERE key = ?", (key,))
        log_database_operation("scalar", "DELETE", 1, key=key)

    def clear(self) -> None:
        with connect(self.db_path) as c:
            c.execute("DELETE FROM collection")
            c.execute("DELETE FROM scalar")
        log_database_operation("*", "CLEAR")


class MemoryStore:
    """Same contract as SqliteStore, kept in a dict.

    Records go through a JSON round-trip on every read and write, so callers
    never share objects with the store (as with the real backend).
    """

    def __init__(self) -> None:
        self._collections: Dict[str, str] = {}
        self._scalars: Dict[str, str] = {}

    def get(self, collection: str) -> List[Dict[str, Any]]:
        raw = self._collections.get(collection)
        return json.loads(raw) if raw else []

    def set(self, collection: str, records: List[Dict[str, Any]]) -> None:
        self._collections[collection] = json.dumps(list(records), ensure_ascii=False)

    def get_scalar(self, key: str) -> Optional[str]:
        return self._scalars.get(key)

    def set_scalar(self, key: str, value: str) -> None:
        self._scalars[key] = value

    def delete_scalar(self, key: str) -> None:
        self._scalars.pop(key, None)

    def clear(self) -> None:
        self._collections.clear()
        self._scalars.clear()
