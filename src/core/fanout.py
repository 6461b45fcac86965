"""Fan-out of new alerts to the log, live subscribers, and the push sink.

Dispatch order is fixed:
1) Append to the in-memory alert log (always)
2) Wake every registered subscriber (one coalescing slot each)
3) Queue the rendered text for the push sink, if its filter allows it

Steps 1 and 2 never roll back. Push delivery runs on a single worker task
fed by a bounded queue, so a slow sink slows nothing but itself.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import threading
from typing import List, Optional

from core.filters import FilterSettings
from core.models import Alert, AlertCategory, LogEntry, RenderedNotification
from core.ports import NotifierPort

LOGGER = logging.getLogger(__name__)

_STOP = object()


class Subscription:
    """Handle for one live subscriber.

    Wakes coalesce: several dispatches before the subscriber gets around to
    ``wait`` leave a single pending signal. On wake the subscriber calls
    ``drain`` to read everything appended since its cursor.
    """

    def __init__(self, hub: "FanoutHub", handle: int, cursor: int) -> None:
        self._hub = hub
        self.handle = handle
        self._cursor = cursor
        self._wake = asyncio.Event()

    @property
    def pending(self) -> bool:
        return self._wake.is_set()

    def notify(self) -> None:
        self._wake.set()

    async def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until woken; returns False if ``timeout`` expired first."""

        try:
            await asyncio.wait_for(self._wake.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        self._wake.clear()
        return True

    def drain(self) -> List[LogEntry]:
        entries = self._hub.entries_since(self._cursor)
        self._cursor += len(entries)
        return entries


class FanoutHub:
    """Broadcast point owning the alert log and the subscriber set."""

    def __init__(
        self,
        notifier: Optional[NotifierPort] = None,
        push_filter: Optional[FilterSettings] = None,
        queue_size: int = 100,
        enqueue_timeout: float = 5.0,
        send_timeout: float = 15.0,
    ) -> None:
        self._notifier = notifier
        self._push_filter = push_filter or FilterSettings.all_enabled()
        self._enqueue_timeout = enqueue_timeout
        self._send_timeout = send_timeout

        self._log_lock = threading.Lock()
        self._log: List[LogEntry] = []

        self._subscribers_lock = threading.Lock()
        self._subscribers: dict[int, Subscription] = {}
        self._handles = itertools.count(1)

        self._queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self._worker: Optional[asyncio.Task] = None

    # -- alert log ------------------------------------------------------------

    def log_snapshot(self) -> List[LogEntry]:
        with self._log_lock:
            return list(self._log)

    def log_length(self) -> int:
        with self._log_lock:
            return len(self._log)

    def entries_since(self, cursor: int) -> List[LogEntry]:
        with self._log_lock:
            return self._log[cursor:]

    # -- subscribers ----------------------------------------------------------

    def subscribe(self, replay: bool = False) -> Subscription:
        """Register a live subscriber.

        By default the cursor starts at the end of the log; ``replay`` starts
        it at zero so the first ``drain`` returns the whole history.
        """

        cursor = 0 if replay else self.log_length()
        with self._subscribers_lock:
            subscription = Subscription(self, next(self._handles), cursor)
            self._subscribers[subscription.handle] = subscription
            count = len(self._subscribers)
        LOGGER.info("Subscriber %s connected (%s active)", subscription.handle, count)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._subscribers_lock:
            self._subscribers.pop(subscription.handle, None)
            count = len(self._subscribers)
        LOGGER.info("Subscriber %s disconnected (%s active)", subscription.handle, count)

    def subscriber_count(self) -> int:
        with self._subscribers_lock:
            return len(self._subscribers)

    # -- dispatch -------------------------------------------------------------

    async def dispatch(
        self,
        alert: Alert,
        category: AlertCategory,
        rendered: RenderedNotification,
        alert_id: str = "",
    ) -> None:
        entry = LogEntry(alert_id=alert_id, alert=alert, category=category, rendered=rendered)
        with self._log_lock:
            self._log.append(entry)

        # Copy under the lock, signal outside it.
        with self._subscribers_lock:
            subscribers = list(self._subscribers.values())
        for subscription in subscribers:
            subscription.notify()

        if self._notifier is None or not self._push_filter.enabled(category):
            return
        try:
            await asyncio.wait_for(self._queue.put(rendered), self._enqueue_timeout)
        except asyncio.TimeoutError:
            LOGGER.warning("Push queue full, dropping %s notification", rendered.kind)

    # -- push worker ----------------------------------------------------------

    def start(self) -> None:
        """Start the push worker. Must be called from the running loop."""

        if self._notifier is None or self._worker is not None:
            return
        self._worker = asyncio.create_task(self._push_worker())

    async def close(self) -> None:
        """Deliver whatever is queued, then stop the push worker."""

        if self._worker is None:
            return
        await self._queue.put(_STOP)
        await self._worker
        self._worker = None

    async def _push_worker(self) -> None:
        while True:
            item = await self._queue.get()
            try:
                if item is _STOP:
                    return
                await self._deliver(item)
            finally:
                self._queue.task_done()

    async def _deliver(self, notification: RenderedNotification) -> None:
        # Best effort: one attempt, bounded by send_timeout, never retried.
        try:
            await asyncio.wait_for(self._notifier.send(notification), self._send_timeout)
        except asyncio.TimeoutError:
            LOGGER.warning("Push delivery timed out for %s notification", notification.kind)
        except Exception:
            LOGGER.exception("Push delivery failed for %s notification", notification.kind)
