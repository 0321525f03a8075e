# stok/infra/migrations.py
"""
Schema migrations driven by PRAGMA user_version.

V1: collection and scalar tables (JSON payloads)
V2: `updated_at` column on both tables
"""

from __future__ import annotations

from typing import List
from .db import connect


SCHEMA_V1: List[str] = [
    # Whole collections (stock, cases, history, checklists) as JSON arrays
    """
    CREATE TABLE IF NOT EXISTS collection (
        name TEXT PRIMARY KEY,
        payload TEXT NOT NULL DEFAULT '[]'
    );
    """,
    # Single values (current user)
    """
    CREATE TABLE IF NOT EXISTS scalar (
        key TEXT PRIMARY KEY,
        value TEXT
    );
    """,
]


def _ensure_column(conn, table: str, column: str, ddl: str) -> None:
    """Adds a column when it does not exist yet."""
    cur = conn.execute(f"PRAGMA table_info({table});")
    cols = [r[1] for r in cur.fetchall()]  # r[1] is the column name
    if column not in cols:
        conn.execute(f"ALTER TABLE {table} ADD COLUMN {ddl};")


def _apply_v1(conn) -> None:
    for sql in SCHEMA_V1:
        conn.executescript(sql)


def _apply_v2(conn) -> None:
    _ensure_column(conn, "collection", "updated_at", "updated_at TEXT")
    _ensure_column(conn, "scalar", "updated_at", "updated_at TEXT")


def apply_migrations(db_path: str) -> int:
    """Applies the pending migrations and returns the resulting version."""
    with connect(db_path) as conn:
        ver = conn.execute("PRAGMA user_version;").fetchone()[0] or 0

        if ver < 1:
            _apply_v1(conn)
            conn.execute("PRAGMA user_version = 1;")
            ver = 1

        if ver < 2:
            _apply_v2(conn)
            conn.execute("PRAGMA user_version = 2;")
            ver = 2

    return ver
