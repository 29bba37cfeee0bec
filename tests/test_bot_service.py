"""Unit tests for BotService context building and reply delivery."""

from __future__ import annotations

import unittest
from decimal import Decimal

from orderbot.models.states import ConversationState
from orderbot.providers.data_sources.mock_data import MockCatalog, MockOrderBackend, MockStoreAdmin
from orderbot.providers.messaging.mock_messaging import MockMessagingProvider
from orderbot.services.bot_service import BotService
from orderbot.services.conversation_manager import ConversationRegistry
from orderbot.services.flow_manager import FlowManager

S = ConversationState

TENANT = "pizzeria"
USER = "+54 9 11 2233-4455"


class FailingCatalog(MockCatalog):
    """Catalog whose category lookup always fails."""

    async def get_categories(self, tenant_id: str):
        raise RuntimeError("catalog down")


class BotServiceTestCase(unittest.IsolatedAsyncioTestCase):
    """Covers product listing, admin detection and payment delivery."""

    def _build_service(self, catalog: MockCatalog | None = None) -> tuple[BotService, MockMessagingProvider, FlowManager]:
        order_backend = MockOrderBackend(delivery_fee=Decimal("500"))
        messaging_provider = MockMessagingProvider()
        flow_manager = FlowManager(registry=ConversationRegistry())
        service = BotService(
            flow_manager=flow_manager,
            messaging_provider=messaging_provider,
            catalog=catalog or MockCatalog(delivery_fee=Decimal("500")),
            order_backend=order_backend,
            store_admin=MockStoreAdmin(order_backend=order_backend),
            admin_phones=["5491122334455"],
        )
        return service, messaging_provider, flow_manager

    async def test_category_selection_appends_product_list(self) -> None:
        service, messaging_provider, flow_manager = self._build_service()

        for text in ("menu", "1"):
            reply = await service.handle_message(tenant_id=TENANT, user_id=USER, message=text)

        self.assertIn("1. Muzzarella - $2500.00", reply.text)
        self.assertEqual(flow_manager.get_conversation(TENANT, USER).state, S.SELECTING_CATEGORY)
        self.assertEqual(len(messaging_provider.sent_messages), 2)
        self.assertEqual(messaging_provider.sent_messages[-1]["message"], reply.text)

    async def test_products_of_selected_category_reach_handlers(self) -> None:
        service, _, flow_manager = self._build_service()

        for text in ("menu", "2", "1"):
            await service.handle_message(tenant_id=TENANT, user_id=USER, message=text)

        conversation = flow_manager.get_conversation(TENANT, USER)
        self.assertEqual(conversation.state, S.ADDING_TO_CART)
        self.assertEqual(conversation.selected_product.product_id, "hb-1")

    def test_admin_detection_ignores_formatting(self) -> None:
        service, _, _ = self._build_service()

        self.assertTrue(service.is_admin("+54 9 11 2233-4455"))
        self.assertFalse(service.is_admin("5491100000000"))

    async def test_admin_command_runs_for_admin(self) -> None:
        service, _, _ = self._build_service()

        reply = await service.handle_message(tenant_id=TENANT, user_id=USER, message="pausar_tienda")

        self.assertIn("PAUSADA", reply.text)

    async def test_catalog_failure_sends_apology(self) -> None:
        service, messaging_provider, flow_manager = self._build_service(catalog=FailingCatalog())

        with self.assertLogs("orderbot.services.bot_service", level="ERROR"):
            reply = await service.handle_message(tenant_id=TENANT, user_id=USER, message="hola")

        self.assertIn("Lo sentimos", reply.text)
        self.assertIsNone(flow_manager.get_conversation(TENANT, USER))
        self.assertEqual(len(messaging_provider.sent_messages), 1)

    async def test_payment_notification_delivery(self) -> None:
        service, messaging_provider, flow_manager = self._build_service()
        for text in ("menu", "1", "1", "1", "finalizar", "Av. Siempre Viva 742", "transferencia", "si"):
            await service.handle_message(tenant_id=TENANT, user_id=USER, message=text)
        conversation = flow_manager.get_conversation(TENANT, USER)
        self.assertEqual(conversation.state, S.WAITING_EXTERNAL_PAYMENT)

        self.assertFalse(
            await service.notify_payment_result(tenant_id=TENANT, user_id=USER, order_id="other", approved=True)
        )
        delivered = await service.notify_payment_result(
            tenant_id=TENANT, user_id=USER, order_id=conversation.pending_order_id, approved=True
        )

        self.assertTrue(delivered)
        self.assertEqual(conversation.state, S.ORDER_PLACED)
        self.assertIn("Pago aprobado", messaging_provider.sent_messages[-1]["message"])


if __name__ == "__main__":
    unittest.main()
