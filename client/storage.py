"""
client/storage.py -- SQLite-backed key/value store for durable client state.

Keeps the session token and the selected collection id across restarts,
the way a browser keeps them in local storage. Values are plain strings;
callers convert on the way in and out.

Usage:
    storage = ClientStorage()                  # ~/.curio/client.db
    storage.set(TOKEN_KEY, token)
    storage.get(SELECTED_COLLECTION_KEY)       # "3" or None
    storage.delete(TOKEN_KEY)
"""

import sqlite3
import threading
import time
from pathlib import Path
from typing import Optional, Union

from client.config import get_client_settings

TOKEN_KEY = "token"
SELECTED_COLLECTION_KEY = "selectedCollection"

_DDL = """
CREATE TABLE IF NOT EXISTS client_state (
    key         TEXT PRIMARY KEY,
    value       TEXT NOT NULL,
    updated_at  REAL NOT NULL
);
"""


class ClientStorage:
    def __init__(self, db_path: Union[Path, str, None] = None) -> None:
        if db_path is None:
            db_path = get_client_settings().storage_path
        if str(db_path) != ":memory:":
            Path(db_path).expanduser().parent.mkdir(parents=True, exist_ok=True)
            db_path = Path(db_path).expanduser()
        # One connection shared by the selection worker threads; the lock
        # serializes statements on it.
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute(_DDL)
        self._conn.commit()

    def get(self, key: str) -> Optional[str]:
        """Return the stored value for key, or None."""
        with self._lock:
            row = self._conn.execute("SELECT value FROM client_state WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any existing entry."""
        with self._lock:
            self._conn.execute(
                "INSERT OR REPLACE INTO client_state (key, value, updated_at) VALUES (?, ?, ?)",
                (key, value, time.time()),
            )
            self._conn.commit()

    def delete(self, key: str) -> bool:
        """Remove key. Returns True if it was present."""
        with self._lock:
            cursor = self._conn.execute("DELETE FROM client_state WHERE key = ?", (key,))
            self._conn.commit()
        return cursor.rowcount > 0

    def close(self) -> None:
        self._conn.close()
