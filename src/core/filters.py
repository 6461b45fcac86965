"""Per-category enable/disable switches.

Config files keep the original camelCase keys (``chitChat`` for comments) so
existing filter files keep working.
"""

from __future__ import annotations

import logging
import threading
from typing import Mapping, Optional

from core.models import AlertCategory

LOGGER = logging.getLogger(__name__)

CONFIG_KEYS = {
    AlertCategory.COMMENT: "chitChat",
    AlertCategory.POLICE: "police",
    AlertCategory.JAM: "jam",
    AlertCategory.ACCIDENT: "accident",
    AlertCategory.UNKNOWN: "unknown",
}
_CATEGORY_BY_KEY = {key: category for category, key in CONFIG_KEYS.items()}


def category_from_key(key: str) -> Optional[AlertCategory]:
    """Accept either the config key (``chitChat``) or the category value (``comment``)."""

    if key in _CATEGORY_BY_KEY:
        return _CATEGORY_BY_KEY[key]
    try:
        return AlertCategory(key.lower())
    except ValueError:
        return None


class FilterSettings:
    """Thread-safe category switches; categories default to disabled."""

    def __init__(self, enabled: Optional[Mapping[AlertCategory, bool]] = None) -> None:
        self._lock = threading.Lock()
        self._enabled = {category: False for category in AlertCategory}
        if enabled:
            self._enabled.update({category: bool(flag) for category, flag in enabled.items()})

    @classmethod
    def from_dict(cls, raw: Optional[Mapping[str, object]]) -> "FilterSettings":
        settings = cls()
        settings.update(raw or {})
        return settings

    @classmethod
    def all_enabled(cls) -> "FilterSettings":
        return cls({category: True for category in AlertCategory})

    def enabled(self, category: AlertCategory) -> bool:
        with self._lock:
            return self._enabled[category]

    def update(self, raw: Mapping[str, object]) -> None:
        """Apply a partial ``{config_key: bool}`` mapping."""

        resolved: dict[AlertCategory, bool] = {}
        for key, flag in raw.items():
            category = category_from_key(str(key))
            if category is None:
                LOGGER.warning("Ignoring unknown filter key %r", key)
                continue
            if not isinstance(flag, bool):
                LOGGER.warning("Ignoring non-boolean value %r for filter key %r", flag, key)
                continue
            resolved[category] = flag
        with self._lock:
            self._enabled.update(resolved)

    def as_dict(self) -> dict[str, bool]:
        with self._lock:
            return {CONFIG_KEYS[category]: flag for category, flag in self._enabled.items()}
