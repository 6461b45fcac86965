"""Deduplication store for alert identifiers (core domain)."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Tuple

LOGGER = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DedupStore:
    """Thread-safe set of alert ids that were already dispatched.

    Ids are never dropped implicitly. Retention is an explicit operation
    (``prune``) counted from the last time the feed reported an id, so an
    alert that stays live is never forgotten while it is still reported.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        # dict keeps insertion order, which is what snapshot() returns
        self._seen: dict[str, datetime] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)

    def __contains__(self, alert_id: object) -> bool:
        return isinstance(alert_id, str) and self.has(alert_id)

    def has(self, alert_id: str) -> bool:
        with self._lock:
            return alert_id in self._seen

    def add(self, alert_id: str, last_seen: Optional[datetime] = None) -> None:
        """Record an id. Adding an id that is already present is a no-op."""

        with self._lock:
            self._seen.setdefault(alert_id, last_seen or _utcnow())

    def touch(self, alert_id: str, now: Optional[datetime] = None) -> bool:
        """Refresh last_seen for an id the feed still reports.

        Returns False when the id is unknown; unknown ids are not added.
        """

        with self._lock:
            if alert_id not in self._seen:
                return False
            self._seen[alert_id] = now or _utcnow()
            return True

    def remove(self, alert_id: str) -> None:
        with self._lock:
            self._seen.pop(alert_id, None)

    def snapshot(self) -> List[str]:
        with self._lock:
            return list(self._seen)

    def snapshot_with_times(self) -> List[Tuple[str, datetime]]:
        with self._lock:
            return list(self._seen.items())

    def load(self, entries: object) -> None:
        """Bulk-initialize from a persisted snapshot.

        Accepts plain ids or ``(id, last_seen)`` pairs. Anything else leaves
        the store empty and logs a warning; a bad snapshot is never fatal.
        """

        try:
            loaded = _parse_snapshot(entries)
        except (TypeError, ValueError) as exc:
            LOGGER.warning("Ignoring malformed dedup snapshot: %s", exc)
            loaded = {}

        with self._lock:
            self._seen = loaded
        LOGGER.info("Dedup store loaded with %s ids", len(loaded))

    def prune(self, ttl_days: int, now: Optional[datetime] = None) -> int:
        """Drop ids the feed has not reported for ``ttl_days``; return the count."""

        cutoff = (now or _utcnow()) - timedelta(days=ttl_days)
        with self._lock:
            expired = [key for key, seen_at in self._seen.items() if seen_at < cutoff]
            for key in expired:
                del self._seen[key]
        return len(expired)


def _parse_snapshot(entries: object) -> dict[str, datetime]:
    if entries is None:
        return {}
    if isinstance(entries, (str, bytes)) or not isinstance(entries, Iterable):
        raise TypeError(f"expected a sequence of ids, got {type(entries).__name__}")

    now = _utcnow()
    parsed: dict[str, datetime] = {}
    for entry in entries:
        if isinstance(entry, str):
            parsed.setdefault(entry, now)
            continue
        if isinstance(entry, (tuple, list)) and len(entry) == 2 and isinstance(entry[0], str):
            seen_at = entry[1]
            if isinstance(seen_at, str):
                seen_at = datetime.fromisoformat(seen_at)
            if not isinstance(seen_at, datetime):
                raise TypeError(f"bad last_seen for {entry[0]!r}")
            if seen_at.tzinfo is None:
                seen_at = seen_at.replace(tzinfo=timezone.utc)
            parsed.setdefault(entry[0], seen_at)
            continue
        raise TypeError(f"unsupported snapshot entry: {entry!r}")
    return parsed
