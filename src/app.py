"""Application entry point for the wazewatch alert relay."""

from __future__ import annotations

import argparse
import asyncio
import functools
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint
from dotenv import load_dotenv

import settings
from adapters.log_stream import LogStreamSubscriber
from adapters.sqlite_storage import SQLiteStorage
from adapters.telegram_bot_notifier import TelegramBotNotifier
from adapters.telegram_notifier import TelegramSavedMessagesNotifier
from adapters.waze_feed import WazeFeed
from core.counter import PeakCounter
from core.dedup import DedupStore
from core.errors import PersistenceFailure
from core.fanout import FanoutHub
from core.filters import CONFIG_KEYS, FilterSettings, category_from_key
from core.jobs import emit_report, fetch_alerts, persist_state, restore_state, sample_users
from core.processor import IngestionPipeline
from core.scheduler import Job, Scheduler

NAME = "WAZEWATCH"
FONT = "tarty-1"

LOGGER = logging.getLogger(__name__)


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = []
    for name in redact_cfg.get("patterns", []):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", True):
        return

    load_dotenv()
    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    formatter = _RedactingFormatter(_collect_redaction_values(config), fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "logs/wazewatch.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        file_handler = RotatingFileHandler(
            path,
            maxBytes=int(file_cfg.get("max_bytes", 5 * 1024 * 1024)),
            backupCount=int(file_cfg.get("backup_count", 5)),
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


async def _build_notifier():
    """Select the push adapter; returns (notifier, telethon_client_or_None)."""

    method = settings.NOTIFICATIONS.method
    if method == "off":
        return None, None
    if method == "bot":
        load_dotenv()
        bot_token = os.getenv("BOT_API")
        if not bot_token:
            raise RuntimeError("BOT_API is required when notification_method=bot")
        if not settings.NOTIFICATIONS.bot_chat_id:
            raise RuntimeError("notifications.bot_chat_id is required for bot notifications")
        notifier = TelegramBotNotifier(
            bot_token=bot_token,
            chat_id=settings.NOTIFICATIONS.bot_chat_id,
            timeout=settings.NOTIFICATIONS.send_timeout_seconds,
        )
        return notifier, None
    if method == "saved_messages":
        from get_session import connect_saved_messages_client

        client = await connect_saved_messages_client()
        return TelegramSavedMessagesNotifier(client), client
    raise RuntimeError("notification_method must be 'saved_messages', 'bot' or 'off'")


def _init_storage() -> Optional[SQLiteStorage]:
    storage = SQLiteStorage(settings.DB_PATH)
    try:
        storage.init_db()
    except PersistenceFailure as exc:
        LOGGER.warning("Persistence disabled: %s", exc)
        return None
    return storage


async def _persist_and_refresh(
    storage: Optional[SQLiteStorage],
    dedup: DedupStore,
    counter: PeakCounter,
    push_filter: FilterSettings,
    stream_filter: FilterSettings,
) -> None:
    if storage is not None:
        await persist_state(storage, dedup, counter, settings.DEDUP.ttl_days)

    # Pick up filter edits made with `wazewatch filters` while running.
    try:
        filters = await asyncio.to_thread(settings.load_filters)
    except (OSError, ValueError) as exc:
        LOGGER.warning("Can't reload filters: %s", exc)
        return
    push_filter.update(filters.get("push", {}))
    stream_filter.update(filters.get("stream", {}))


async def _watch() -> None:
    storage = _init_storage()
    dedup = DedupStore()
    counter = PeakCounter()
    if storage is not None:
        restore_state(storage, dedup, counter)

    notifier, client = await _build_notifier()
    LOGGER.info("Selected notification method - %s", settings.NOTIFICATIONS.method)

    push_filter = FilterSettings.from_dict(settings.PUSH_FILTERS)
    stream_filter = FilterSettings.from_dict(settings.STREAM_FILTERS)

    hub = FanoutHub(
        notifier=notifier,
        push_filter=push_filter,
        queue_size=settings.NOTIFICATIONS.queue_size,
        send_timeout=settings.NOTIFICATIONS.send_timeout_seconds,
    )
    pipeline = IngestionPipeline(dedup, hub)
    feed = WazeFeed(settings.FEED)

    schedule = settings.SCHEDULE
    scheduler = Scheduler(
        [
            Job("fetch-alerts", functools.partial(fetch_alerts, feed, pipeline), schedule.fetch_minutes),
            Job("sample-users", functools.partial(sample_users, feed, counter), schedule.sample_minutes),
            Job(
                "emit-report",
                functools.partial(
                    emit_report, counter, notifier, settings.NOTIFICATIONS.send_timeout_seconds
                ),
                schedule.report_minutes,
            ),
            Job(
                "persist-state",
                functools.partial(
                    _persist_and_refresh, storage, dedup, counter, push_filter, stream_filter
                ),
                schedule.persist_minutes,
            ),
        ]
    )

    stream_task: Optional[asyncio.Task] = None
    if settings.STREAMING_ENABLED:
        stream = LogStreamSubscriber(hub, stream_filter, replay=settings.STREAMING_REPLAY)
        stream_task = asyncio.create_task(stream.run(), name="log-stream")

    hub.start()
    scheduler.start()
    LOGGER.info("Watching %s", feed.alerts_url)
    try:
        await scheduler.wait()
    finally:
        await scheduler.stop()
        if stream_task is not None:
            stream_task.cancel()
            await asyncio.gather(stream_task, return_exceptions=True)
        await hub.close()
        if storage is not None:
            await persist_state(storage, dedup, counter)
        if client is not None:
            await client.disconnect()
        LOGGER.info("Stopped")


def _run() -> None:
    _print_banner()
    _configure_logging()
    LOGGER.info("Starting wazewatch")
    try:
        asyncio.run(_watch())
    except KeyboardInterrupt:
        LOGGER.info("Interrupted")


def _filters(args: argparse.Namespace) -> None:
    push_filter = FilterSettings.from_dict(settings.PUSH_FILTERS)
    stream_filter = FilterSettings.from_dict(settings.STREAM_FILTERS)
    targets = {"push": [push_filter], "stream": [stream_filter], "both": [push_filter, stream_filter]}

    changes: dict[str, bool] = {}
    for key, flag in [(k, True) for k in args.enable] + [(k, False) for k in args.disable]:
        category = category_from_key(key)
        if category is None:
            raise SystemExit(f"Unknown category: {key}")
        changes[CONFIG_KEYS[category]] = flag

    if changes:
        for target in targets[args.target]:
            target.update(changes)
        settings.save_filters(push_filter.as_dict(), stream_filter.as_dict())

    for name, current in (("push", push_filter), ("stream", stream_filter)):
        enabled = [key for key, flag in current.as_dict().items() if flag]
        print(f"{name}: {', '.join(enabled) or '(none)'}")


def _login() -> None:
    _print_banner()
    from get_session import login

    asyncio.run(login())


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="wazewatch")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the watcher")
    subparsers.add_parser("login", help="Authorize the Telegram session for Saved Messages")
    filters_parser = subparsers.add_parser("filters", help="Show or change category filters")
    filters_parser.add_argument("--target", choices=["push", "stream", "both"], default="both")
    filters_parser.add_argument("--enable", action="append", default=[], metavar="CATEGORY")
    filters_parser.add_argument("--disable", action="append", default=[], metavar="CATEGORY")

    args = parser.parse_args(argv)
    if args.command == "login":
        _login()
        return
    if args.command == "filters":
        _filters(args)
        return
    _run()


if __name__ == "__main__":
    main()
