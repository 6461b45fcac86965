"""SQLite storage adapter.

Implements the core StoragePort using a simple SQLite database.
"""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

from core.errors import PersistenceFailure

PEAK_COUNTER = "max_wazers_online"


class SQLiteStorage:
    """Thin SQLite wrapper that satisfies the StoragePort contract."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - seen: alert ids already dispatched, for restart-safe dedup
        - counters: named integer values (the peak online-user count)
        """

        try:
            with self._connect() as conn:
                # seen is rewritten as a whole on every save; it mirrors the
                # in-memory DedupStore snapshot.
                # Fields:
                # - alert_id: feed uuid (PRIMARY KEY)
                # - last_seen: timestamp the id was last present in the feed, for TTL cleanup
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS seen (
                        alert_id TEXT PRIMARY KEY,
                        last_seen TIMESTAMP NOT NULL
                    )
                    """
                )
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS counters (
                        name TEXT PRIMARY KEY,
                        value INTEGER NOT NULL
                    )
                    """
                )
        except sqlite3.Error as e:
            raise PersistenceFailure(f"can't initialise {self._db_path}: {e}") from e

    def load_seen(self) -> List[Tuple[str, datetime]]:
        """Return every stored alert id with its last_seen time."""

        try:
            with self._connect() as conn:
                rows = conn.execute(
                    "SELECT alert_id, last_seen FROM seen ORDER BY rowid"
                ).fetchall()
        except sqlite3.Error as e:
            raise PersistenceFailure(f"can't load seen ids: {e}") from e

        entries: List[Tuple[str, datetime]] = []
        for row in rows:
            try:
                last_seen = datetime.fromisoformat(row["last_seen"])
            except (TypeError, ValueError):
                last_seen = datetime.now(timezone.utc)
            entries.append((row["alert_id"], last_seen))
        return entries

    def save_seen(self, entries: Sequence[Tuple[str, datetime]]) -> None:
        """Replace the stored ids with the given snapshot in one transaction."""

        try:
            with self._connect() as conn:
                conn.execute("DELETE FROM seen")
                conn.executemany(
                    "INSERT OR IGNORE INTO seen (alert_id, last_seen) VALUES (?, ?)",
                    [(alert_id, last_seen.isoformat()) for alert_id, last_seen in entries],
                )
        except sqlite3.Error as e:
            raise PersistenceFailure(f"can't save seen ids: {e}") from e

    def get_peak(self) -> Optional[int]:
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT value FROM counters WHERE name = ?",
                    (PEAK_COUNTER,),
                ).fetchone()
        except sqlite3.Error as e:
            raise PersistenceFailure(f"can't load peak counter: {e}") from e
        return int(row["value"]) if row else None

    def set_peak(self, value: int) -> None:
        """Upsert the peak online-user count."""

        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO counters (name, value)
                    VALUES (?, ?)
                    ON CONFLICT(name) DO UPDATE SET value = excluded.value
                    """,
                    (PEAK_COUNTER, value),
                )
        except sqlite3.Error as e:
            raise PersistenceFailure(f"can't save peak counter: {e}") from e
