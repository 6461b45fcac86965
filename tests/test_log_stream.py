from __future__ import annotations

import asyncio

from adapters.log_stream import LogStreamSubscriber
from core.classifier import classify
from core.fanout import FanoutHub
from core.filters import FilterSettings
from core.models import AlertCategory


async def _dispatch(hub: FanoutHub, alert: dict) -> None:
    category, rendered = classify(alert)
    await hub.dispatch(alert, category, rendered, alert_id=alert["uuid"])


def test_stream_emits_only_enabled_categories() -> None:
    emitted: list[str] = []

    async def scenario() -> int:
        hub = FanoutHub()
        stream = LogStreamSubscriber(
            hub, FilterSettings({AlertCategory.JAM: True}), emit=emitted.append
        )
        task = asyncio.create_task(stream.run())
        await asyncio.sleep(0)

        await _dispatch(hub, {"uuid": "a1", "type": "JAM"})
        await _dispatch(hub, {"uuid": "a2", "type": "POLICE"})
        for _ in range(100):
            if emitted:
                break
            await asyncio.sleep(0.01)

        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        return hub.subscriber_count()

    remaining = asyncio.run(scenario())

    assert len(emitted) == 1
    assert "Traffic jam" in emitted[0]
    # Cancelling the stream deregisters it from the hub.
    assert remaining == 0


def test_replay_flushes_history_on_start() -> None:
    emitted: list[str] = []

    async def scenario() -> None:
        hub = FanoutHub()
        await _dispatch(hub, {"uuid": "a1", "type": "ACCIDENT"})
        stream = LogStreamSubscriber(hub, FilterSettings.all_enabled(), replay=True, emit=emitted.append)
        task = asyncio.create_task(stream.run())
        await asyncio.sleep(0)
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    asyncio.run(scenario())

    assert len(emitted) == 1
    assert "Accident" in emitted[0]
