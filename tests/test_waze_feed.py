from __future__ import annotations

import json

import pytest

from adapters.waze_feed import WazeFeed, add_bounds_to_url, parse_alerts, parse_user_count
from core.config import FeedConfig
from core.errors import MalformedPayload


def test_add_bounds_to_url() -> None:
    url = add_bounds_to_url({"left": -52.21, "top": -26.5}, "https://feed?format=JSON")
    assert url == "https://feed?format=JSON&left=-52.2100&top=-26.5000"


def test_alerts_url_uses_configured_bounds() -> None:
    feed = WazeFeed(
        FeedConfig(
            alerts_url="https://feed?tk=community",
            broadcast_url="https://broadcast",
            area_bounds={"bottom": -27.5},
        )
    )
    assert feed.alerts_url == "https://feed?tk=community&bottom=-27.5000"


def test_parse_alerts() -> None:
    alerts = [{"uuid": "a1", "type": "JAM"}]
    assert parse_alerts({"alerts": alerts, "startTime": "x"}) == alerts


@pytest.mark.parametrize("payload", [[], {"jams": []}, {"alerts": "nope"}])
def test_parse_alerts_rejects_bad_shapes(payload) -> None:
    with pytest.raises(MalformedPayload):
        parse_alerts(payload)


def test_parse_user_count_sums_jams() -> None:
    data = {"usersOnJams": [{"wazersCount": 10.0}, {"wazersCount": 7}, {"wazersCount": 0}]}
    assert parse_user_count(data) == 17


@pytest.mark.parametrize(
    "payload",
    [{}, {"usersOnJams": None}, {"usersOnJams": [{"jamLevel": 2}]}, {"usersOnJams": ["x"]}],
)
def test_parse_user_count_rejects_bad_shapes(payload) -> None:
    with pytest.raises(MalformedPayload):
        parse_user_count(payload)


@pytest.mark.parametrize("raw", ["NaN", "Infinity", "-Infinity"])
def test_parse_user_count_rejects_non_finite_counts(raw) -> None:
    data = json.loads('{"usersOnJams": [{"wazersCount": 3}, {"wazersCount": %s}]}' % raw)
    with pytest.raises(MalformedPayload):
        parse_user_count(data)
