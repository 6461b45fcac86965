"""Shared notification formatting helpers.

Keeping formatting here prevents drift between adapters and keeps messages
consistent regardless of delivery channel.
"""

from __future__ import annotations

import html
from datetime import datetime
from typing import Optional

from core.models import RenderedNotification


def _timestamp(now: Optional[datetime]) -> str:
    return (now or datetime.now().astimezone()).strftime("%H:%M:%S")


def _split_headline(text: str) -> tuple[str, str]:
    headline, _, details = text.partition("\n")
    return headline, details


def _format_markdown(notification: RenderedNotification, now: Optional[datetime]) -> str:
    """Create the Markdown body used by Saved Messages."""

    # Telegram Markdown is supported by passing parse_mode="Markdown".
    def escape_md(value: str) -> str:
        for ch in r"*[`_":
            value = value.replace(ch, f"\\{ch}")
        return value

    headline, details = _split_headline(notification.text)
    lines = [f"[{_timestamp(now)}] {escape_md(headline)}"]
    if details:
        # Field dumps read better monospaced; nothing inside needs escaping
        # except the fence itself.
        lines.append("```\n" + details.replace("```", "'''") + "\n```")
    return "\n".join(lines)


def _format_html(notification: RenderedNotification, now: Optional[datetime]) -> str:
    """Create the HTML body used by the Bot API adapter."""

    headline, details = _split_headline(notification.text)
    parts = [f"[{html.escape(_timestamp(now))}] {html.escape(headline)}"]
    if details:
        parts.append(f"<pre>{html.escape(details)}</pre>")
    return "\n".join(parts)


def _format_plain(notification: RenderedNotification, now: Optional[datetime]) -> str:
    return f"[{_timestamp(now)}] {notification.text}"


def format_notification(
    notification: RenderedNotification,
    mode: str,
    now: Optional[datetime] = None,
) -> str:
    """Return the notification formatted for the requested mode."""

    if mode == "markdown":
        return _format_markdown(notification, now)
    if mode == "html":
        return _format_html(notification, now)
    if mode == "plain":
        return _format_plain(notification, now)
    raise ValueError(f"Unsupported notification format: {mode}")
