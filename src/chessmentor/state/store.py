"""SQLite-backed snapshot storage for ChessMentor."""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

from chessmentor.config.settings import Settings


@dataclass
class Snapshot:
    key: str
    payload: dict
    updated_at: str


class StateStore:
    """Stores whole-engine snapshots as JSON blobs, one row per key.

    The store does no error handling of its own: ``sqlite3.Error``,
    ``OSError`` and ``json.JSONDecodeError`` reach the caller, which
    decides whether a failure is fatal.
    """

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = db_path or Settings().state_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _init_db(self) -> None:
        with self._conn() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS snapshots (
                    key TEXT PRIMARY KEY,
                    payload TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

    def _conn(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def get(self, key: str) -> Optional[Snapshot]:
        with self._conn() as conn:
            row = conn.execute(
                "SELECT key, payload, updated_at FROM snapshots WHERE key = ?",
                (key,),
            ).fetchone()
        if not row:
            return None
        return Snapshot(key=row[0], payload=json.loads(row[1]), updated_at=row[2])

    def load(self, key: str) -> Optional[dict]:
        snapshot = self.get(key)
        return snapshot.payload if snapshot else None

    def save(self, key: str, payload: dict) -> None:
        now = datetime.now().isoformat()
        with self._conn() as conn:
            conn.execute(
                """INSERT OR REPLACE INTO snapshots (key, payload, updated_at)
                   VALUES (?, ?, ?)""",
                (key, json.dumps(payload), now),
            )

    def keys(self) -> list[str]:
        with self._conn() as conn:
            rows = conn.execute("SELECT key FROM snapshots ORDER BY key").fetchall()
        return [r[0] for r in rows]

    def delete(self, key: str) -> None:
        with self._conn() as conn:
            conn.execute("DELETE FROM snapshots WHERE key = ?", (key,))
