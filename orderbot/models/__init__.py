"""Domain models package."""

from orderbot.models.context import HandlerReply, OrderContext, OrderReceipt, PaymentDestination
from orderbot.models.conversation import (
    CartLine,
    CartOption,
    Category,
    Conversation,
    Product,
    TransitionRecord,
)
from orderbot.models.conversation_record import ConversationRecord
from orderbot.models.states import ConversationState, PaymentMethod

__all__ = [
    "CartLine",
    "CartOption",
    "Category",
    "Conversation",
    "ConversationRecord",
    "ConversationState",
    "HandlerReply",
    "OrderContext",
    "OrderReceipt",
    "PaymentDestination",
    "PaymentMethod",
    "Product",
    "TransitionRecord",
]
