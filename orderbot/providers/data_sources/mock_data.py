"""Mock catalog, order backend and store admin implementations."""

from __future__ import annotations

from decimal import Decimal

from orderbot.interfaces.catalog_source import CatalogSource
from orderbot.interfaces.order_backend import OrderBackend
from orderbot.interfaces.store_admin import StoreAdmin
from orderbot.models.context import OrderReceipt
from orderbot.models.conversation import Category, Conversation, Product


class MockCatalog(CatalogSource):
    """In-memory catalog shared by every tenant."""

    def __init__(self, delivery_fee: Decimal = Decimal("500")) -> None:
        self._categories: list[Category] = [
            Category(category_id="pizzas", name="Pizzas"),
            Category(category_id="hamburguesas", name="Hamburguesas"),
            Category(category_id="bebidas", name="Bebidas"),
        ]
        self._products: dict[str, list[Product]] = {
            "pizzas": [
                Product(product_id="pz-1", name="Muzzarella", price=Decimal("2500")),
                Product(product_id="pz-2", name="Napolitana", price=Decimal("2800")),
            ],
            "hamburguesas": [
                Product(product_id="hb-1", name="Clásica", price=Decimal("1800"), description="Carne, queso y tomate"),
                Product(product_id="hb-2", name="Doble carne", price=Decimal("2400")),
            ],
            "bebidas": [
                Product(product_id="bb-1", name="Agua", price=Decimal("600")),
                Product(product_id="bb-2", name="Gaseosa", price=Decimal("800")),
            ],
        }
        self._delivery_fee = delivery_fee

    async def get_categories(self, tenant_id: str) -> list[Category]:
        return list(self._categories)

    async def get_products(self, tenant_id: str, category_id: str) -> list[Product]:
        return list(self._products.get(category_id, []))

    async def get_delivery_fee(self, tenant_id: str) -> Decimal:
        return self._delivery_fee


class MockOrderBackend(OrderBackend):
    """In-memory order store with sequential order numbers."""

    def __init__(self, delivery_fee: Decimal = Decimal("0")) -> None:
        self._orders: dict[str, dict[str, object]] = {}
        self._order_sequence = 0
        self._delivery_fee = delivery_fee

    async def create_order(self, conversation: Conversation) -> OrderReceipt:
        self._order_sequence += 1
        order_number = f"{self._order_sequence:04d}"
        order_id = f"{conversation.tenant_id}-{order_number}"
        total = conversation.cart_total() + self._delivery_fee
        self._orders[order_id] = {
            "tenant_id": conversation.tenant_id,
            "user_id": conversation.user_id,
            "order_number": order_number,
            "address": conversation.address,
            "payment_method": conversation.payment_method,
            "total": total,
            "status": "pending",
        }
        return OrderReceipt(order_id=order_id, order_number=order_number, total=total)

    async def get_order_status(self, tenant_id: str, order_ref: str) -> str | None:
        for order in self._orders.values():
            if order["tenant_id"] == tenant_id and order["order_number"] == order_ref:
                return str(order["status"])
        return None

    async def get_orders(self) -> list[dict[str, object]]:
        """Helper for tests/debugging; not part of OrderBackend contract."""
        return list(self._orders.values())


class MockStoreAdmin(StoreAdmin):
    """Keeps an open/paused flag per tenant."""

    def __init__(self, order_backend: MockOrderBackend | None = None) -> None:
        self._paused: set[str] = set()
        self._order_backend = order_backend

    def is_open(self, tenant_id: str) -> bool:
        return tenant_id not in self._paused

    async def run_command(self, tenant_id: str, command: str) -> str | None:
        text = command.lower().strip().strip("*")
        if "pausar_tienda" in text:
            self._paused.add(tenant_id)
            return "⏸️ *TIENDA PAUSADA*\n\nPara reanudar, envía: *reanudar_tienda*"
        if "reanudar_tienda" in text:
            self._paused.discard(tenant_id)
            return "▶️ *TIENDA REANUDADA*\n\nLa tienda está nuevamente abierta y recibiendo pedidos."
        if "estado_tienda" in text:
            status = "abierta ✅" if self.is_open(tenant_id) else "pausada ⏸️"
            return f"🏪 La tienda está {status}"
        if "ver_pendientes" in text:
            if self._order_backend is None:
                return "📭 No hay pedidos pendientes."
            pending = [
                order
                for order in await self._order_backend.get_orders()
                if order["tenant_id"] == tenant_id and order["status"] == "pending"
            ]
            if not pending:
                return "📭 No hay pedidos pendientes."
            lines = [f"📋 *PEDIDOS PENDIENTES* ({len(pending)})", ""]
            lines.extend(f"#{order['order_number']} - ${order['total']}" for order in pending)
            return "\n".join(lines)
        return None
