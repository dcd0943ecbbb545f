"""SQLite-backed key/value storage for persisted client state.

Each store writes its whole state as one named JSON blob, overwriting the
previous value. The blob store survives process restarts, so anything
written before an abrupt termination is still there on the next start.
"""

import json
import logging
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class LocalStorage:
    """Named-blob storage backed by a single SQLite table.

    Values are stored as JSON text. Writes commit immediately so a
    completed `set_item` is durable.
    """

    def __init__(self, db_path: Path | str) -> None:
        """Initialize the storage.

        Args:
            db_path: Path to the SQLite database file, or ":memory:"
        """
        self.db_path = db_path
        if str(db_path) != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        self._conn = sqlite3.connect(str(db_path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._create_table()

    def _create_table(self) -> None:
        """Create the blob table if it doesn't exist."""
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS blobs (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
        """)
        self._conn.commit()

    def get_item(self, key: str) -> str | None:
        """Return the raw text stored under `key`, or None."""
        with self._lock:
            cursor = self._conn.execute("SELECT value FROM blobs WHERE key = ?", (key,))
            row = cursor.fetchone()
        return row["value"] if row else None

    def set_item(self, key: str, value: str) -> None:
        """Overwrite the blob stored under `key`."""
        now = datetime.now(timezone.utc).isoformat()
        with self._lock:
            self._conn.execute(
                """
                INSERT INTO blobs (key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value,
                                               updated_at = excluded.updated_at
                """,
                (key, value, now),
            )
            self._conn.commit()

    def load_json(self, key: str) -> Any | None:
        """Parse the JSON blob under `key`.

        Unreadable blobs are logged and reported as missing.
        """
        raw = self.get_item(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Discarding unreadable blob: key=%s, error=%s", key, e)
            return None

    def save_json(self, key: str, value: Any) -> None:
        """Serialize `value` as JSON and overwrite the blob under `key`."""
        self.set_item(key, json.dumps(value, separators=(",", ":")))

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
