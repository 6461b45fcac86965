"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class FeedConfig:
    """Where to poll and which bounding box to ask for."""

    alerts_url: str
    broadcast_url: str
    area_bounds: dict[str, float] = field(default_factory=dict)
    timeout_seconds: float = 10.0


@dataclass(frozen=True)
class ScheduleConfig:
    """Job intervals in minutes, aligned to wall-clock minute boundaries."""

    fetch_minutes: int = 1
    sample_minutes: int = 1
    report_minutes: int = 60
    persist_minutes: int = 5


@dataclass(frozen=True)
class DedupConfig:
    """Retention for seen alert ids; 0 keeps them forever."""

    ttl_days: int


@dataclass(frozen=True)
class NotificationConfig:
    """Push sink settings consumed by the fan-out hub and notifier adapters."""

    method: str
    bot_chat_id: Optional[str]
    queue_size: int = 100
    send_timeout_seconds: float = 15.0
