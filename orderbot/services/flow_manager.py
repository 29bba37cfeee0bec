"""Conversational flow entry point: routes inbound messages to state handlers."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Mapping

from orderbot.models.context import HandlerReply, OrderContext
from orderbot.models.conversation import Conversation
from orderbot.models.states import ConversationState
from orderbot.services.conversation_manager import ConversationRegistry
from orderbot.services.intent_engine import Intent, default_classifier
from orderbot.services.state_handlers import APOLOGY, HANDLERS, Handler, HELP_TEXT

logger = logging.getLogger(__name__)

GOODBYE_TEXT = "👋 ¡Gracias por escribirnos! Cuando quieras volver, escribe *hola*."

# States that consume free text, plus the wait for an external payment.
_NO_GOODBYE_STATES = frozenset(
    {
        ConversationState.CHECKOUT_ADDRESS,
        ConversationState.TRACKING_ORDER,
        ConversationState.SUPPORT,
        ConversationState.ADMIN_COMMAND,
        ConversationState.WAITING_EXTERNAL_PAYMENT,
    }
)


class FlowManager:
    """Controls conversational state transitions for every (tenant, user) pair."""

    def __init__(
        self,
        registry: ConversationRegistry,
        handlers: Mapping[ConversationState, Handler] | None = None,
    ) -> None:
        self.registry = registry
        self.handlers = dict(handlers or HANDLERS)

    async def process_message(
        self,
        tenant_id: str,
        user_id: str,
        text: str,
        context: OrderContext,
    ) -> HandlerReply:
        """Handle one inbound message, fully, before the next one for the same key."""
        async with self.registry.session(tenant_id, user_id) as conversation:
            classifier = context.classifier or default_classifier
            if (
                conversation.state not in _NO_GOODBYE_STATES
                and classifier.classify(text) == Intent.END_SESSION
            ):
                self.registry.remove(tenant_id, user_id)
                return HandlerReply(text=GOODBYE_TEXT)

            handler = self.handlers.get(conversation.state)
            if handler is None:
                logger.error("No handler registered for state %s", conversation.state.value)
                return HandlerReply(text=HELP_TEXT)

            if context.load_products is not None and conversation.selected_category_id is not None:
                try:
                    products = await context.load_products(conversation.selected_category_id)
                except Exception:
                    logger.exception("Product lookup failed for %s:%s", tenant_id, user_id)
                    return HandlerReply(text=APOLOGY)
                context = replace(context, products=list(products))

            state_before = conversation.state
            reply = await handler(text, conversation, context)
            if conversation.state != state_before:
                logger.info(
                    "Conversation %s:%s moved %s -> %s",
                    tenant_id,
                    user_id,
                    state_before.value,
                    conversation.state.value,
                )
            return reply

    async def notify_payment_result(
        self,
        tenant_id: str,
        user_id: str,
        order_id: str,
        approved: bool,
    ) -> HandlerReply | None:
        """Apply an out-of-band payment result to a conversation waiting for it.

        Returns the message to deliver to the user, or None when no matching
        conversation is waiting (it may have expired already).
        """
        async with self.registry.existing_session(tenant_id, user_id) as conversation:
            if (
                conversation is None
                or conversation.state != ConversationState.WAITING_EXTERNAL_PAYMENT
                or conversation.pending_order_id != order_id
            ):
                logger.info("Payment result for %s:%s order %s ignored", tenant_id, user_id, order_id)
                return None

            if approved:
                conversation.cart.clear()
                conversation.transition(ConversationState.ORDER_PLACED)
                return HandlerReply(
                    text="💰 ¡Pago aprobado! Tu pedido está en preparación 🍳. Te avisaremos cuando esté en camino."
                )

            conversation.transition(ConversationState.IDLE, pending_order_id=None)
            return HandlerReply(
                text=(
                    "❌ No pudimos confirmar el pago de tu pedido. Tu carrito sigue guardado; "
                    "escribe *carrito* para intentarlo nuevamente."
                ),
                quick_replies=["🛒 Mi Carrito"],
            )

    def get_conversation(self, tenant_id: str, user_id: str) -> Conversation | None:
        """Expose the live conversation for a key (test/debug helper)."""
        return self.registry.get(tenant_id, user_id)
