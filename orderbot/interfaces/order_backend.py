"""Interface contract for order persistence backends."""

from abc import ABC, abstractmethod

from orderbot.models.context import OrderReceipt
from orderbot.models.conversation import Conversation


class OrderBackend(ABC):
    """Creates orders from checked-out conversations and reports their status."""

    @abstractmethod
    async def create_order(self, conversation: Conversation) -> OrderReceipt:
        """Persist an order for the conversation cart. May raise on failure."""
        raise NotImplementedError

    @abstractmethod
    async def get_order_status(self, tenant_id: str, order_ref: str) -> str | None:
        """Return a human readable status for an order number, or None if unknown."""
        raise NotImplementedError
