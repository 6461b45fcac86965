"""Core domain models.

Alerts stay as the raw mappings the feed produced; only the derived values
(category, rendered notification, log entry) get their own types so adapters
never need to know about Waze field names.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

# Raw feed record. Read-only once ingested.
Alert = Mapping[str, Any]


class AlertCategory(str, Enum):
    """Closed set of alert categories. UNKNOWN is the catch-all."""

    COMMENT = "comment"
    POLICE = "police"
    JAM = "jam"
    ACCIDENT = "accident"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class RenderedNotification:
    """Human-readable text derived from one alert (or one report)."""

    kind: str
    text: str


@dataclass(frozen=True)
class LogEntry:
    """One classified alert as stored in the hub's append-only log."""

    alert_id: str
    alert: Alert
    category: AlertCategory
    rendered: RenderedNotification
