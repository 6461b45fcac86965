"""Waze live-map feed adapter.

Implements the core FeedPort with plain blocking HTTP calls; the scheduled
jobs run them in a worker thread.
"""

from __future__ import annotations

import json
import urllib.error
import urllib.request
from typing import Any, List, Mapping

from core.config import FeedConfig
from core.errors import MalformedPayload, TransientFetchFailure
from core.models import Alert


def add_bounds_to_url(bounds: Mapping[str, float], source_url: str) -> str:
    """Append ``&key=value`` bounding-box parameters to the feed URL."""

    parts = [source_url]
    for key, value in bounds.items():
        parts.append(f"&{key}={value:.4f}")
    return "".join(parts)


def parse_alerts(data: Any) -> List[Alert]:
    if not isinstance(data, dict):
        raise MalformedPayload("alert feed response is not a JSON object")
    if "alerts" not in data:
        raise MalformedPayload("'alerts' key not found in data")
    alerts = data["alerts"]
    if not isinstance(alerts, list):
        raise MalformedPayload("'alerts' is not a list")
    return alerts


def parse_user_count(data: Any) -> int:
    if not isinstance(data, dict):
        raise MalformedPayload("broadcast feed response is not a JSON object")
    users_on_jams = data.get("usersOnJams")
    if not isinstance(users_on_jams, list):
        raise MalformedPayload("'usersOnJams' key not found in data")

    total = 0
    for jam in users_on_jams:
        count = jam.get("wazersCount") if isinstance(jam, dict) else None
        if isinstance(count, bool) or not isinstance(count, (int, float)):
            raise MalformedPayload(f"bad wazersCount entry: {jam!r}")
        try:
            total += int(count)
        except (ValueError, OverflowError) as e:
            raise MalformedPayload(f"bad wazersCount entry: {jam!r}") from e
    return total


class WazeFeed:
    """Fetches alerts and online-user counts from the public Waze feeds."""

    def __init__(self, config: FeedConfig) -> None:
        self._config = config

    @property
    def alerts_url(self) -> str:
        return add_bounds_to_url(self._config.area_bounds, self._config.alerts_url)

    def _get_json(self, url: str) -> Any:
        request = urllib.request.Request(url, headers={"User-Agent": "wazewatch"})
        try:
            with urllib.request.urlopen(request, timeout=self._config.timeout_seconds) as response:
                body = response.read()
        except urllib.error.HTTPError as e:
            raise TransientFetchFailure(f"feed returned HTTP {e.code}") from e
        except (urllib.error.URLError, OSError) as e:
            raise TransientFetchFailure(f"feed unreachable: {e}") from e

        try:
            return json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise MalformedPayload(f"can't decode response: {e}") from e

    def fetch_alerts(self) -> List[Alert]:
        return parse_alerts(self._get_json(self.alerts_url))

    def fetch_user_count(self) -> int:
        return parse_user_count(self._get_json(self._config.broadcast_url))
