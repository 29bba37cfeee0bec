"""Per-call execution context handed to state handlers, and handler replies."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Awaitable, Callable, Sequence

from orderbot.models.conversation import Category, Conversation, Product

if TYPE_CHECKING:
    from orderbot.interfaces.ai_provider import AIProvider
    from orderbot.interfaces.store_admin import StoreAdmin
    from orderbot.services.intent_engine import IntentClassifier


@dataclass(frozen=True, slots=True)
class OrderReceipt:
    """Result of a successful order creation."""

    order_id: str
    order_number: str
    total: Decimal


@dataclass(frozen=True, slots=True)
class PaymentDestination:
    """Bank transfer details shown to the customer."""

    alias: str = "TIENDA.MP"
    cvu: str | None = None
    holder: str | None = None


CreateOrder = Callable[[Conversation], Awaitable[OrderReceipt]]
LookupOrderStatus = Callable[[str, str], Awaitable[str | None]]
LoadProducts = Callable[[str], Awaitable[Sequence[Product]]]


@dataclass(slots=True)
class OrderContext:
    """Collaborators and catalog data supplied fresh on every inbound message.

    When ``load_products`` is set, ``products`` is filled with the products
    of the conversation's selected category while its key is locked.
    """

    create_order: CreateOrder
    categories: Sequence[Category] = ()
    products: Sequence[Product] = ()
    delivery_fee: Decimal = Decimal("0")
    payment_destination: PaymentDestination = field(default_factory=PaymentDestination)
    estimated_delivery: str = "30-45 min"
    greeting: str | None = None
    lookup_order_status: LookupOrderStatus | None = None
    load_products: LoadProducts | None = None
    ai_provider: AIProvider | None = None
    store_admin: StoreAdmin | None = None
    is_admin: bool = False
    classifier: IntentClassifier | None = None


@dataclass(slots=True)
class HandlerReply:
    """Reply text plus optional quick-reply labels.

    ``category_id`` asks the transport layer to render the product list of a
    freshly selected category.
    """

    text: str
    quick_replies: list[str] = field(default_factory=list)
    category_id: str | None = None
