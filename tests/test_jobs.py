from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Optional

from core.counter import PeakCounter
from core.dedup import DedupStore
from core.errors import MalformedPayload, PersistenceFailure, TransientFetchFailure
from core.fanout import FanoutHub
from core.jobs import emit_report, fetch_alerts, persist_state, restore_state, sample_users
from core.models import RenderedNotification
from core.processor import IngestionPipeline


class FakeFeed:
    def __init__(self, alerts=None, count=0, error: Optional[Exception] = None) -> None:
        self._alerts = alerts or []
        self._count = count
        self._error = error

    def fetch_alerts(self):
        if self._error:
            raise self._error
        return self._alerts

    def fetch_user_count(self) -> int:
        if self._error:
            raise self._error
        return self._count


class FakeNotifier:
    def __init__(self, fail: bool = False) -> None:
        self.sent: list[RenderedNotification] = []
        self._fail = fail

    async def send(self, notification: RenderedNotification) -> None:
        if self._fail:
            raise TransientFetchFailure("Bot API error 502")
        self.sent.append(notification)


class FakeStorage:
    def __init__(self, fail: bool = False) -> None:
        self.seen: list[tuple[str, datetime]] = []
        self.peak: Optional[int] = None
        self._fail = fail

    def load_seen(self):
        if self._fail:
            raise PersistenceFailure("disk gone")
        return list(self.seen)

    def save_seen(self, entries) -> None:
        if self._fail:
            raise PersistenceFailure("disk gone")
        self.seen = list(entries)

    def get_peak(self) -> Optional[int]:
        return self.peak

    def set_peak(self, value: int) -> None:
        self.peak = value


def _pipeline() -> tuple[IngestionPipeline, FanoutHub]:
    hub = FanoutHub()
    return IngestionPipeline(DedupStore(), hub), hub


def test_fetch_alerts_ingests_batch() -> None:
    pipeline, hub = _pipeline()
    feed = FakeFeed(alerts=[{"uuid": "a1", "type": "JAM"}, {"uuid": "a2", "type": "POLICE"}])

    assert asyncio.run(fetch_alerts(feed, pipeline)) == 2
    assert hub.log_length() == 2


def test_fetch_failures_skip_the_tick() -> None:
    pipeline, hub = _pipeline()

    assert asyncio.run(fetch_alerts(FakeFeed(error=TransientFetchFailure("timeout")), pipeline)) == 0
    assert asyncio.run(fetch_alerts(FakeFeed(error=MalformedPayload("no alerts")), pipeline)) == 0
    assert hub.log_length() == 0


def test_sample_users_feeds_the_counter() -> None:
    counter = PeakCounter()

    asyncio.run(sample_users(FakeFeed(count=12), counter))
    asyncio.run(sample_users(FakeFeed(count=5), counter))
    asyncio.run(sample_users(FakeFeed(error=TransientFetchFailure("down")), counter))

    assert counter.peek() == 12


def test_invalid_sample_is_rejected_at_the_boundary() -> None:
    counter = PeakCounter(initial=3)

    assert asyncio.run(sample_users(FakeFeed(count=-1), counter)) is None
    assert counter.peek() == 3


def test_emit_report_sends_peak_and_resets() -> None:
    counter = PeakCounter()
    counter.observe(30)
    notifier = FakeNotifier()

    assert asyncio.run(emit_report(counter, notifier)) == 30
    assert counter.peek() == 0
    assert notifier.sent[0].kind == "report"
    assert "30" in notifier.sent[0].text


def test_emit_report_is_silent_at_zero() -> None:
    notifier = FakeNotifier()
    asyncio.run(emit_report(PeakCounter(), notifier))
    assert notifier.sent == []


def test_emit_report_delivery_failure_is_not_raised() -> None:
    counter = PeakCounter(initial=8)
    assert asyncio.run(emit_report(counter, FakeNotifier(fail=True))) == 8
    assert counter.peek() == 0


def test_persist_and_restore_round_trip() -> None:
    storage = FakeStorage()
    dedup = DedupStore()
    dedup.add("a1")
    dedup.add("a2")
    counter = PeakCounter(initial=17)

    assert asyncio.run(persist_state(storage, dedup, counter)) is True

    restored_dedup = DedupStore()
    restored_counter = PeakCounter()
    restore_state(storage, restored_dedup, restored_counter)

    assert restored_dedup.snapshot() == ["a1", "a2"]
    assert restored_counter.peek() == 17


def test_persist_prunes_expired_ids() -> None:
    storage = FakeStorage()
    dedup = DedupStore()
    dedup.add("ancient", last_seen=datetime(2000, 1, 1, tzinfo=timezone.utc))
    dedup.add("recent")

    asyncio.run(persist_state(storage, dedup, PeakCounter(), ttl_days=7))

    assert [alert_id for alert_id, _ in storage.seen] == ["recent"]


def test_persistence_failures_are_not_fatal() -> None:
    storage = FakeStorage(fail=True)
    dedup = DedupStore()
    dedup.add("keep")
    counter = PeakCounter(initial=4)

    assert asyncio.run(persist_state(storage, dedup, counter)) is False
    assert dedup.has("keep")

    restore_state(storage, dedup, counter)
    assert len(dedup) == 0
    assert counter.peek() == 0
