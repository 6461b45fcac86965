"""Scheduled job bodies.

Each job catches the failures it knows about, logs them, and returns, so a
bad tick only costs that tick. Blocking feed and storage calls run in a
worker thread to keep the event loop free for the other jobs.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from core.classifier import render_report
from core.counter import PeakCounter
from core.dedup import DedupStore
from core.errors import InvalidSample, MalformedPayload, PersistenceFailure, TransientFetchFailure
from core.ports import FeedPort, NotifierPort, StoragePort
from core.processor import IngestionPipeline

LOGGER = logging.getLogger(__name__)


async def fetch_alerts(feed: FeedPort, pipeline: IngestionPipeline) -> int:
    """Pull one alert batch and ingest it. Returns the number dispatched."""

    try:
        batch = await asyncio.to_thread(feed.fetch_alerts)
    except TransientFetchFailure as exc:
        LOGGER.warning("Can't get updates: %s", exc)
        return 0
    except MalformedPayload as exc:
        LOGGER.warning("Can't decode alert feed: %s", exc)
        return 0

    dispatched = await pipeline.ingest(batch)
    LOGGER.info("Processed %s alerts, %s new", len(batch), dispatched)
    return dispatched


async def sample_users(feed: FeedPort, counter: PeakCounter) -> Optional[int]:
    """Sample the online-user count and feed it to the peak counter."""

    try:
        count = await asyncio.to_thread(feed.fetch_user_count)
    except (TransientFetchFailure, MalformedPayload) as exc:
        LOGGER.warning("Can't count wazers: %s", exc)
        return None

    try:
        counter.observe(count)
    except InvalidSample as exc:
        LOGGER.warning("Rejected user sample: %s", exc)
        return None
    LOGGER.debug("Sampled %s wazers online", count)
    return count


async def emit_report(
    counter: PeakCounter,
    notifier: Optional[NotifierPort],
    send_timeout: float = 15.0,
) -> int:
    """Send the peak since the last report and reset it.

    Nothing is sent when the peak is zero. Delivery is a single attempt.
    """

    peak = counter.take_and_reset()
    if peak <= 0:
        return peak
    if notifier is None:
        LOGGER.info("Peak wazers online: %s (no push sink configured)", peak)
        return peak

    try:
        await asyncio.wait_for(notifier.send(render_report(peak)), send_timeout)
    except asyncio.TimeoutError:
        LOGGER.warning("Report delivery timed out (peak=%s)", peak)
    except Exception:
        LOGGER.exception("Report delivery failed (peak=%s)", peak)
    else:
        LOGGER.info("Report sent: %s wazers online", peak)
    return peak


def restore_state(storage: StoragePort, dedup: DedupStore, counter: PeakCounter) -> None:
    """Load the last snapshot; any failure starts from empty/zero."""

    try:
        dedup.load(storage.load_seen())
        counter.load(storage.get_peak())
    except PersistenceFailure as exc:
        LOGGER.warning("Can't load saved state, starting empty: %s", exc)
        dedup.load([])
        counter.load(0)


def _persist(
    storage: StoragePort,
    dedup: DedupStore,
    counter: PeakCounter,
    ttl_days: Optional[int],
) -> None:
    if ttl_days:
        removed = dedup.prune(ttl_days)
        if removed:
            LOGGER.info("Dedup cleanup removed %s ids", removed)
    storage.save_seen(dedup.snapshot_with_times())
    storage.set_peak(counter.peek())


async def persist_state(
    storage: StoragePort,
    dedup: DedupStore,
    counter: PeakCounter,
    ttl_days: Optional[int] = None,
) -> bool:
    """Prune expired ids and save the dedup/counter snapshot."""

    try:
        await asyncio.to_thread(_persist, storage, dedup, counter, ttl_days)
    except PersistenceFailure as exc:
        LOGGER.warning("Can't save state: %s", exc)
        return False
    return True
