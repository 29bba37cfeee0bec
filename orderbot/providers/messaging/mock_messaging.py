"""Mock messaging provider implementation."""

import logging

from orderbot.interfaces.messaging_provider import MessagingProvider

logger = logging.getLogger(__name__)


class MockMessagingProvider(MessagingProvider):
    """Log-based sender for local testing."""

    def __init__(self) -> None:
        self.sent_messages: list[dict[str, object]] = []

    async def send_message(self, user: str, message: str, quick_replies: list[str] | None = None) -> None:
        self.sent_messages.append({"user": user, "message": message, "quick_replies": list(quick_replies or [])})
        logger.info("[MockMessaging] -> user=%s | message=%s | options=%s", user, message, quick_replies or [])
