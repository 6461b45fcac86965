"""Telegram notification adapter for Saved Messages.

Formats a Markdown message and sends it to the logged-in user's Saved Messages.
"""

from __future__ import annotations

from adapters.notification_formatting import format_notification
from core.models import RenderedNotification


class TelegramSavedMessagesNotifier:
    """Notifier adapter that sends messages to the user's Saved Messages."""

    def __init__(self, client) -> None:
        self._client = client

    async def send(self, notification: RenderedNotification) -> None:
        """Send the formatted notification to Saved Messages."""

        message = format_notification(notification, mode="markdown")
        await self._client.send_message("me", message, parse_mode="Markdown")
