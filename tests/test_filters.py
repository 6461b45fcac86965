from __future__ import annotations

import logging

from core.filters import FilterSettings, category_from_key
from core.models import AlertCategory


def test_from_dict_uses_config_keys() -> None:
    filters = FilterSettings.from_dict({"chitChat": True, "police": True, "jam": False})

    assert filters.enabled(AlertCategory.COMMENT)
    assert filters.enabled(AlertCategory.POLICE)
    assert not filters.enabled(AlertCategory.JAM)
    # Categories missing from the file stay off.
    assert not filters.enabled(AlertCategory.UNKNOWN)


def test_update_is_partial_and_ignores_unknown_keys() -> None:
    filters = FilterSettings.all_enabled()
    filters.update({"unknown": False, "weather": True})

    assert filters.as_dict() == {
        "chitChat": True,
        "police": True,
        "jam": True,
        "accident": True,
        "unknown": False,
    }


def test_category_from_key_accepts_both_spellings() -> None:
    assert category_from_key("chitChat") is AlertCategory.COMMENT
    assert category_from_key("comment") is AlertCategory.COMMENT
    assert category_from_key("Police") is AlertCategory.POLICE
    assert category_from_key("weather") is None


def test_update_ignores_non_boolean_values(caplog) -> None:
    filters = FilterSettings.from_dict({"police": False, "jam": True})

    with caplog.at_level(logging.WARNING, logger="core.filters"):
        filters.update({"police": "false", "jam": 0})

    assert not filters.enabled(AlertCategory.POLICE)
    assert filters.enabled(AlertCategory.JAM)
    assert len(caplog.records) == 2
