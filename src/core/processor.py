"""Core alert ingestion pipeline.

This module is integration-agnostic. It turns one raw feed batch into
dispatches on the FanoutHub, using the DedupStore to make repeated batches
idempotent.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Iterable

from core.classifier import classify
from core.dedup import DedupStore
from core.errors import MalformedAlert
from core.fanout import FanoutHub
from core.models import Alert

LOGGER = logging.getLogger(__name__)

ID_FIELD = "uuid"

# How many rejected ids to remember so their warning is logged only once.
REJECTED_MEMORY = 1024


class IngestionPipeline:
    """Filters already-seen alerts, classifies the rest, and hands them to the hub."""

    def __init__(self, dedup: DedupStore, hub: FanoutHub, id_field: str = ID_FIELD) -> None:
        self._dedup = dedup
        self._hub = hub
        self._id_field = id_field
        # insertion-ordered so the oldest entry is evicted first
        self._rejected: dict[str, None] = {}

    def _alert_id(self, alert: object) -> str:
        if not isinstance(alert, Mapping):
            raise MalformedAlert(f"alert is not a mapping: {type(alert).__name__}")
        alert_id = alert.get(self._id_field)
        if not isinstance(alert_id, str) or not alert_id:
            raise MalformedAlert(f"alert is missing '{self._id_field}'")
        return alert_id

    def _reject(self, alert_id: str, exc: MalformedAlert) -> None:
        if alert_id in self._rejected:
            LOGGER.debug("Skipping alert %s again: %s", alert_id, exc)
            return
        LOGGER.warning("Skipping alert %s: %s", alert_id, exc)
        self._rejected[alert_id] = None
        if len(self._rejected) > REJECTED_MEMORY:
            del self._rejected[next(iter(self._rejected))]

    async def ingest(self, batch: Iterable[Alert]) -> int:
        """Process one batch in feed order and return how many alerts were dispatched."""

        dispatched = 0
        for alert in batch:
            try:
                alert_id = self._alert_id(alert)
            except MalformedAlert as exc:
                LOGGER.warning("Skipping alert: %s", exc)
                continue

            # Refreshing last_seen keeps a still-live alert from aging out.
            if self._dedup.touch(alert_id):
                continue

            try:
                category, rendered = classify(alert)
            except MalformedAlert as exc:
                self._reject(alert_id, exc)
                continue

            await self._hub.dispatch(alert, category, rendered, alert_id=alert_id)
            # Mark seen only after dispatch: a crash in between means a
            # duplicate after restart, never a lost alert.
            self._dedup.add(alert_id)
            dispatched += 1
            LOGGER.info("Dispatched %s alert %s", category.value, alert_id)

        return dispatched
