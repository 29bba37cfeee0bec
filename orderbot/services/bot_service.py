"""Bot service facade: builds the order context and delivers replies."""

from __future__ import annotations

import logging
import re
from typing import Iterable

from orderbot.interfaces.ai_provider import AIProvider
from orderbot.interfaces.catalog_source import CatalogSource
from orderbot.interfaces.messaging_provider import MessagingProvider
from orderbot.interfaces.order_backend import OrderBackend
from orderbot.interfaces.store_admin import StoreAdmin
from orderbot.models.context import HandlerReply, OrderContext, PaymentDestination
from orderbot.models.conversation import Product
from orderbot.services.flow_manager import FlowManager
from orderbot.services.state_handlers import APOLOGY, format_products

logger = logging.getLogger(__name__)


def _digits(phone: str) -> str:
    return re.sub(r"\D", "", phone)


class BotService:
    """Thin facade between the transport layer and FlowManager."""

    def __init__(
        self,
        flow_manager: FlowManager,
        messaging_provider: MessagingProvider,
        catalog: CatalogSource,
        order_backend: OrderBackend,
        *,
        ai_provider: AIProvider | None = None,
        store_admin: StoreAdmin | None = None,
        payment_destination: PaymentDestination | None = None,
        estimated_delivery: str = "30-45 min",
        admin_phones: Iterable[str] = (),
    ) -> None:
        self.flow_manager = flow_manager
        self.messaging_provider = messaging_provider
        self.catalog = catalog
        self.order_backend = order_backend
        self.ai_provider = ai_provider
        self.store_admin = store_admin
        self.payment_destination = payment_destination or PaymentDestination()
        self.estimated_delivery = estimated_delivery
        self._admin_phones = {_digits(phone) for phone in admin_phones if _digits(phone)}

    def is_admin(self, user_id: str) -> bool:
        return _digits(user_id) in self._admin_phones

    async def build_context(self, tenant_id: str, user_id: str) -> OrderContext:
        """Fetch a fresh catalog view; products are loaded once the key is locked."""
        categories = await self.catalog.get_categories(tenant_id)
        delivery_fee = await self.catalog.get_delivery_fee(tenant_id)

        async def load_products(category_id: str) -> list[Product]:
            return await self.catalog.get_products(tenant_id, category_id)

        return OrderContext(
            create_order=self.order_backend.create_order,
            categories=categories,
            load_products=load_products,
            delivery_fee=delivery_fee,
            payment_destination=self.payment_destination,
            estimated_delivery=self.estimated_delivery,
            lookup_order_status=self.order_backend.get_order_status,
            ai_provider=self.ai_provider,
            store_admin=self.store_admin,
            is_admin=self.is_admin(user_id),
        )

    async def handle_message(self, *, tenant_id: str, user_id: str, message: str) -> HandlerReply:
        """Process one inbound message and send the reply to the user."""
        try:
            context = await self.build_context(tenant_id, user_id)
        except Exception:
            logger.exception("Catalog lookup failed for tenant %s", tenant_id)
            reply = HandlerReply(text=APOLOGY)
        else:
            reply = await self.flow_manager.process_message(tenant_id, user_id, message, context)
            if reply.category_id is not None:
                reply = await self._with_product_list(tenant_id, reply)

        await self.messaging_provider.send_message(user=user_id, message=reply.text, quick_replies=reply.quick_replies)
        return reply

    async def notify_payment_result(self, *, tenant_id: str, user_id: str, order_id: str, approved: bool) -> bool:
        """Apply a payment result and deliver the resulting message, if any."""
        reply = await self.flow_manager.notify_payment_result(tenant_id, user_id, order_id, approved)
        if reply is None:
            return False
        await self.messaging_provider.send_message(user=user_id, message=reply.text, quick_replies=reply.quick_replies)
        return True

    async def _with_product_list(self, tenant_id: str, reply: HandlerReply) -> HandlerReply:
        try:
            products = await self.catalog.get_products(tenant_id, reply.category_id)
        except Exception:
            logger.exception("Product lookup failed for tenant %s", tenant_id)
            return HandlerReply(text=f"{reply.text}\n\n{APOLOGY}", quick_replies=reply.quick_replies)

        if not products:
            listing = "😔 No hay productos disponibles en esta categoría. Escribe *volver* para ver el menú."
        else:
            listing = format_products(products)
        return HandlerReply(
            text=f"{reply.text}\n\n{listing}",
            quick_replies=reply.quick_replies,
            category_id=reply.category_id,
        )
