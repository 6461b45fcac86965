"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for the feed, storage, and notification
adapters so that the core can be reused with different backends.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Protocol, Sequence, Tuple

from core.models import Alert, RenderedNotification


class FeedPort(Protocol):
    """Blocking feed calls; jobs run them in a worker thread."""

    def fetch_alerts(self) -> List[Alert]:
        ...

    def fetch_user_count(self) -> int:
        ...


class StoragePort(Protocol):
    """Snapshot persistence for the dedup store and the peak counter."""

    def load_seen(self) -> List[Tuple[str, datetime]]:
        ...

    def save_seen(self, entries: Sequence[Tuple[str, datetime]]) -> None:
        ...

    def get_peak(self) -> Optional[int]:
        ...

    def set_peak(self, value: int) -> None:
        ...


class NotifierPort(Protocol):
    """Push sink. Raises on delivery failure; callers never retry."""

    async def send(self, notification: RenderedNotification) -> None:
        ...
