"""Unit tests for FlowManager routing and out-of-band payment results."""

from __future__ import annotations

import asyncio
import unittest
from decimal import Decimal

from orderbot.models.context import HandlerReply, OrderContext, OrderReceipt
from orderbot.models.conversation import Category, Conversation, Product
from orderbot.models.states import ConversationState
from orderbot.services.conversation_manager import ConversationRegistry
from orderbot.services.flow_manager import GOODBYE_TEXT, FlowManager
from orderbot.services.state_handlers import HANDLERS

S = ConversationState

TENANT = "pizzeria"
USER = "5491122334455"


class StubOrderBackend:
    """Order backend test double with sequential order ids."""

    def __init__(self) -> None:
        self.calls = 0

    async def create_order(self, conversation: Conversation) -> OrderReceipt:
        self.calls += 1
        return OrderReceipt(order_id=f"ord-{self.calls}", order_number=f"{self.calls:04d}", total=conversation.cart_total())


class FlowManagerTestCase(unittest.IsolatedAsyncioTestCase):
    """Covers a full ordering conversation and payment notifications."""

    def setUp(self) -> None:
        self.registry = ConversationRegistry()
        self.flow_manager = FlowManager(registry=self.registry)
        self.backend = StubOrderBackend()
        self.context = OrderContext(
            create_order=self.backend.create_order,
            categories=[Category(category_id="pizzas", name="Pizzas")],
            products=[Product(product_id="pz-1", name="Muzzarella", price=Decimal("2500"))],
        )

    async def _send(self, text: str) -> HandlerReply:
        return await self.flow_manager.process_message(TENANT, USER, text, self.context)

    async def _walk_to_confirm(self, payment: str) -> Conversation:
        for text in ("hola", "menu", "1", "1", "2", "finalizar", "Av. Siempre Viva 742", payment):
            await self._send(text)
        conversation = self.flow_manager.get_conversation(TENANT, USER)
        assert conversation is not None
        return conversation

    async def test_full_flow_with_cash(self) -> None:
        conversation = await self._walk_to_confirm("efectivo")
        self.assertEqual(conversation.state, S.CHECKOUT_CONFIRM)
        self.assertEqual(conversation.cart[0].quantity, 2)

        reply = await self._send("si")

        self.assertEqual(conversation.state, S.ORDER_PLACED)
        self.assertEqual(self.backend.calls, 1)
        self.assertIn("CONFIRMADO", reply.text)

        await self._send("hola")
        self.assertEqual(conversation.state, S.GREETING)

    async def test_transfer_approved(self) -> None:
        conversation = await self._walk_to_confirm("transferencia")
        await self._send("si")
        self.assertEqual(conversation.state, S.WAITING_EXTERNAL_PAYMENT)

        reply = await self.flow_manager.notify_payment_result(TENANT, USER, "ord-1", approved=True)

        self.assertIsNotNone(reply)
        self.assertEqual(conversation.state, S.ORDER_PLACED)
        self.assertEqual(conversation.cart, [])

    async def test_transfer_rejected_keeps_cart(self) -> None:
        conversation = await self._walk_to_confirm("transferencia")
        await self._send("si")

        reply = await self.flow_manager.notify_payment_result(TENANT, USER, "ord-1", approved=False)

        self.assertIsNotNone(reply)
        self.assertEqual(conversation.state, S.IDLE)
        self.assertIsNone(conversation.pending_order_id)
        self.assertEqual(len(conversation.cart), 1)

    async def test_payment_result_for_other_order_is_ignored(self) -> None:
        conversation = await self._walk_to_confirm("transferencia")
        await self._send("si")

        reply = await self.flow_manager.notify_payment_result(TENANT, USER, "ord-999", approved=True)

        self.assertIsNone(reply)
        self.assertEqual(conversation.state, S.WAITING_EXTERNAL_PAYMENT)

    async def test_payment_result_without_conversation_is_ignored(self) -> None:
        reply = await self.flow_manager.notify_payment_result(TENANT, "unknown", "ord-1", approved=True)

        self.assertIsNone(reply)
        self.assertEqual(len(self.registry), 0)

    async def test_waiting_payment_ignores_end_session(self) -> None:
        conversation = await self._walk_to_confirm("transferencia")
        await self._send("si")

        reply = await self._send("chau")

        self.assertNotEqual(reply.text, GOODBYE_TEXT)
        self.assertEqual(conversation.state, S.WAITING_EXTERNAL_PAYMENT)

    async def test_end_session_removes_conversation(self) -> None:
        await self._send("hola")
        self.assertIn((TENANT, USER), self.registry)

        reply = await self._send("chau")

        self.assertEqual(reply.text, GOODBYE_TEXT)
        self.assertNotIn((TENANT, USER), self.registry)

    async def test_address_containing_goodbye_word_is_stored(self) -> None:
        for text in ("menu", "1", "1", "1", "finalizar"):
            await self._send(text)

        reply = await self._send("Pasaje Adios 1234, depto 2")

        conversation = self.flow_manager.get_conversation(TENANT, USER)
        self.assertIsNotNone(conversation)
        self.assertNotEqual(reply.text, GOODBYE_TEXT)
        self.assertEqual(conversation.state, S.CHECKOUT_PAYMENT)
        self.assertEqual(conversation.address, "Pasaje Adios 1234, depto 2")
        self.assertEqual(len(conversation.cart), 1)

    async def test_support_question_containing_goodbye_word_is_answered(self) -> None:
        await self._send("ayuda")

        reply = await self._send("¿cómo hago para terminar mi pedido?")

        self.assertNotEqual(reply.text, GOODBYE_TEXT)
        self.assertIn((TENANT, USER), self.registry)
        self.assertEqual(self.flow_manager.get_conversation(TENANT, USER).state, S.IDLE)

    async def test_products_are_loaded_for_category_chosen_by_previous_message(self) -> None:
        requested: list[str] = []
        catalog = {
            "pizzas": [Product(product_id="pz-1", name="Muzzarella", price=Decimal("2500"))],
            "bebidas": [Product(product_id="bb-1", name="Agua", price=Decimal("600"))],
        }

        async def load_products(category_id: str) -> list[Product]:
            requested.append(category_id)
            await asyncio.sleep(0)
            return catalog[category_id]

        context = OrderContext(
            create_order=self.backend.create_order,
            categories=[Category(category_id="pizzas", name="Pizzas"), Category(category_id="bebidas", name="Bebidas")],
            load_products=load_products,
        )
        await self.flow_manager.process_message(TENANT, USER, "menu", context)

        # Both messages share a context built before the category was chosen.
        await asyncio.gather(
            self.flow_manager.process_message(TENANT, USER, "2", context),
            self.flow_manager.process_message(TENANT, USER, "1", context),
        )

        conversation = self.flow_manager.get_conversation(TENANT, USER)
        self.assertEqual(conversation.state, S.ADDING_TO_CART)
        self.assertEqual(conversation.selected_product.product_id, "bb-1")
        self.assertEqual(requested, ["bebidas"])
        self.assertEqual(context.products, ())

    async def test_product_lookup_failure_keeps_state(self) -> None:
        async def load_products(category_id: str) -> list[Product]:
            raise RuntimeError("catalog down")

        context = OrderContext(create_order=self.backend.create_order, load_products=load_products)
        conversation = self.registry.get_or_create(TENANT, USER)
        conversation.state = S.SELECTING_CATEGORY
        conversation.selected_category_id = "pizzas"

        with self.assertLogs("orderbot.services.flow_manager", level="ERROR"):
            reply = await self.flow_manager.process_message(TENANT, USER, "1", context)

        self.assertIn("Lo sentimos", reply.text)
        self.assertEqual(conversation.state, S.SELECTING_CATEGORY)

    async def test_messages_for_one_key_are_serialized(self) -> None:
        active = 0
        overlaps = 0

        async def slow_idle(text: str, conversation: Conversation, context: OrderContext) -> HandlerReply:
            nonlocal active, overlaps
            active += 1
            if active > 1:
                overlaps += 1
            await asyncio.sleep(0.01)
            active -= 1
            return HandlerReply(text=text)

        handlers = dict(HANDLERS)
        handlers[S.IDLE] = slow_idle
        flow_manager = FlowManager(registry=self.registry, handlers=handlers)

        replies = await asyncio.gather(
            *(flow_manager.process_message(TENANT, USER, f"msg {index}", self.context) for index in range(5))
        )

        self.assertEqual(overlaps, 0)
        self.assertEqual(len(replies), 5)
        self.assertFalse(self.registry.is_busy(TENANT, USER))


if __name__ == "__main__":
    unittest.main()
