"""Interface contract for messaging providers."""

from abc import ABC, abstractmethod


class MessagingProvider(ABC):
    """Defines outbound message delivery behavior."""

    @abstractmethod
    async def send_message(self, user: str, message: str, quick_replies: list[str] | None = None) -> None:
        """Send a message, with optional quick-reply buttons, to a target user."""
        raise NotImplementedError
