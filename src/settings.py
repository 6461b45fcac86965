"""Static configuration for wazewatch.

All user-editable settings (feed area, schedule, dedup, notifications,
filters, logging) live in a single JSON file for quick edits without
touching Python.
"""

import json
import os

from core.config import DedupConfig, FeedConfig, NotificationConfig, ScheduleConfig

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# Where to store the SQLite database.
DB_PATH = os.path.join(os.path.dirname(__file__), "wazewatch.db")

CONFIG_PATH = os.getenv("WAZEWATCH_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))

DEFAULT_ALERTS_URL = "https://www.waze.com/row-rtserver/web/TGeoRSS?tk=community&format=JSON"


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def load_filters() -> dict:
    """Re-read the filters section; used to pick up edits while running."""

    return _load_json_config().get("filters", {})


def save_filters(push: dict, stream: dict) -> None:
    """Write both filter maps back to config.json, keeping other sections."""

    config = _load_json_config()
    config["filters"] = {"push": push, "stream": stream}
    tmp_path = f"{CONFIG_PATH}.tmp"
    with open(tmp_path, "w", encoding="utf-8") as handle:
        json.dump(config, handle, indent=2, ensure_ascii=False)
        handle.write("\n")
    os.replace(tmp_path, CONFIG_PATH)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Feed endpoints and the bounding box sent with every alert request.
_feed = _CONFIG.get("feed", {})
if not _feed.get("broadcast_url"):
    raise RuntimeError("feed.broadcast_url is required in config.json")
FEED = FeedConfig(
    alerts_url=_feed.get("alerts_url", DEFAULT_ALERTS_URL),
    broadcast_url=_feed["broadcast_url"],
    area_bounds={key: float(value) for key, value in _feed.get("area_bounds", {}).items()},
    timeout_seconds=float(_feed.get("timeout_seconds", 10)),
)

_schedule = _CONFIG.get("schedule", {})
SCHEDULE = ScheduleConfig(
    fetch_minutes=int(_schedule.get("fetch_minutes", 1)),
    sample_minutes=int(_schedule.get("sample_minutes", 1)),
    report_minutes=int(_schedule.get("report_minutes", 60)),
    persist_minutes=int(_schedule.get("persist_minutes", 5)),
)

# Seen alert ids older than ttl_days are pruned on every persist tick.
_dedup = _CONFIG.get("dedup", {})
DEDUP = DedupConfig(ttl_days=int(_dedup.get("ttl_days", 7)))

# Notification method switches adapters without changing core logic:
# "saved_messages", "bot", or "off".
_notifications = _CONFIG.get("notifications", {})
_bot_chat_id = _notifications.get("bot_chat_id")
NOTIFICATIONS = NotificationConfig(
    method=_notifications.get("notification_method", "bot"),
    bot_chat_id=str(_bot_chat_id) if _bot_chat_id else None,
    queue_size=int(_notifications.get("push_queue_size", 100)),
    send_timeout_seconds=float(_notifications.get("send_timeout_seconds", 15)),
)

# Live stream settings; replay emits the whole log when the stream starts.
_streaming = _CONFIG.get("streaming", {})
STREAMING_ENABLED = bool(_streaming.get("enabled", True))
STREAMING_REPLAY = bool(_streaming.get("replay", False))

# Per-category switches, one map for the push sink and one for streams.
_filters = _CONFIG.get("filters", {})
PUSH_FILTERS = _filters.get("push", {})
STREAM_FILTERS = _filters.get("stream", {})

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
