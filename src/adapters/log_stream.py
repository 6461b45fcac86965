"""Live alert stream that writes to a logger.

Stands in for a streaming transport: it holds one hub subscription, and on
every wake emits the new log entries whose category the stream filter
allows. A real transport (SSE, websocket) would replace ``emit``.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

from adapters.notification_formatting import format_notification
from core.fanout import FanoutHub, Subscription
from core.filters import FilterSettings
from core.models import LogEntry

LOGGER = logging.getLogger(__name__)


class LogStreamSubscriber:
    """Forwards filtered alerts from the hub to a callable, one line per alert."""

    def __init__(
        self,
        hub: FanoutHub,
        filters: FilterSettings,
        replay: bool = False,
        emit: Optional[Callable[[str], None]] = None,
    ) -> None:
        self._hub = hub
        self._filters = filters
        self._replay = replay
        self._emit = emit or (lambda text: LOGGER.info("Stream: %s", text))
        self.emitted = 0

    def _select(self, entries: List[LogEntry]) -> List[LogEntry]:
        return [entry for entry in entries if self._filters.enabled(entry.category)]

    def flush(self, subscription: Subscription) -> int:
        """Emit every allowed entry appended since the last flush."""

        selected = self._select(subscription.drain())
        for entry in selected:
            self._emit(format_notification(entry.rendered, mode="plain"))
        self.emitted += len(selected)
        return len(selected)

    async def run(self) -> None:
        """Wake loop; ends when the owning task is cancelled."""

        subscription = self._hub.subscribe(replay=self._replay)
        try:
            if self._replay:
                self.flush(subscription)
            while True:
                await subscription.wait()
                self.flush(subscription)
        finally:
            self._hub.unsubscribe(subscription)
