"""In-memory conversation state for the ordering flow."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Iterable

from orderbot.models.states import ConversationState, PaymentMethod
from orderbot.models.transitions import can_transition

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TIMEOUT = timedelta(minutes=30)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class CartOption:
    """One selected product option and its price modifier."""

    option_id: str
    name: str
    price_modifier: Decimal = Decimal("0")


@dataclass(frozen=True, slots=True)
class Product:
    """Catalog product as supplied by the store backend."""

    product_id: str
    name: str
    price: Decimal
    description: str | None = None


@dataclass(frozen=True, slots=True)
class Category:
    """Catalog category as supplied by the store backend."""

    category_id: str
    name: str


@dataclass(slots=True)
class CartLine:
    """Aggregated (product, option set) entry in a cart."""

    product_id: str
    product_name: str
    unit_price: Decimal
    quantity: int = 1
    options: tuple[CartOption, ...] = ()

    @property
    def unit_total(self) -> Decimal:
        return self.unit_price + sum((option.price_modifier for option in self.options), Decimal("0"))

    @property
    def line_total(self) -> Decimal:
        return self.unit_total * self.quantity


@dataclass(frozen=True, slots=True)
class TransitionRecord:
    """Diagnostic log entry for one state change."""

    from_state: ConversationState
    to_state: ConversationState
    timestamp: datetime
    forced: bool = False


# Fields a transition may merge into the conversation.
_MERGEABLE_FIELDS = frozenset(
    {
        "address",
        "payment_method",
        "pending_order_id",
        "selected_category_id",
        "selected_product",
    }
)


@dataclass(slots=True)
class Conversation:
    """Ordering session for one (tenant, user) pair.

    ``address`` is set by the CHECKOUT_ADDRESS handler before the move to
    CHECKOUT_PAYMENT, and ``payment_method`` by the CHECKOUT_PAYMENT handler
    before the move to CHECKOUT_CONFIRM. The transition table only reaches
    those states through those handlers.
    """

    tenant_id: str
    user_id: str
    state: ConversationState = ConversationState.IDLE
    cart: list[CartLine] = field(default_factory=list)
    address: str | None = None
    payment_method: PaymentMethod | None = None
    pending_order_id: str | None = None
    selected_category_id: str | None = None
    selected_product: Product | None = None
    last_activity: datetime = field(default_factory=utcnow)
    transition_log: list[TransitionRecord] = field(default_factory=list)

    @property
    def key(self) -> tuple[str, str]:
        return (self.tenant_id, self.user_id)

    def can_transition_to(self, target: ConversationState) -> bool:
        return can_transition(self.state, target)

    def transition(self, target: ConversationState, **changes: Any) -> bool:
        """Move to ``target`` if the table allows it, merging ``changes``.

        Returns False and leaves the conversation untouched otherwise.
        """
        self._check_changes(changes)
        if not self.can_transition_to(target):
            logger.warning(
                "Invalid transition %s -> %s for %s:%s",
                self.state.value,
                target.value,
                self.tenant_id,
                self.user_id,
            )
            return False
        self._apply(target, changes, forced=False)
        return True

    def force_transition(self, target: ConversationState, **changes: Any) -> None:
        """Move to ``target`` regardless of the table. Reserved for session timeouts."""
        self._check_changes(changes)
        self._apply(target, changes, forced=True)

    def reset(self) -> None:
        """Clear business data and force the conversation back to IDLE."""
        self.cart.clear()
        self.force_transition(
            ConversationState.IDLE,
            address=None,
            payment_method=None,
            pending_order_id=None,
            selected_category_id=None,
            selected_product=None,
        )

    def is_expired(self, timeout: timedelta = DEFAULT_SESSION_TIMEOUT, now: datetime | None = None) -> bool:
        """Return True when idle strictly longer than ``timeout``."""
        current = now or utcnow()
        return current - self.last_activity > timeout

    def touch(self) -> None:
        self.last_activity = utcnow()

    def add_to_cart(self, product: Product, quantity: int = 1, options: Iterable[CartOption] = ()) -> CartLine:
        """Add ``quantity`` units, merging into a line with the same product and options."""
        if quantity < 1:
            raise ValueError("Cart quantity must be at least 1.")
        selected_options = tuple(options)
        for line in self.cart:
            if line.product_id == product.product_id and line.options == selected_options:
                line.quantity += quantity
                self.touch()
                return line

        line = CartLine(
            product_id=product.product_id,
            product_name=product.name,
            unit_price=product.price,
            quantity=quantity,
            options=selected_options,
        )
        self.cart.append(line)
        self.touch()
        return line

    def clear_cart(self) -> None:
        self.cart.clear()
        self.touch()

    def cart_total(self) -> Decimal:
        return sum((line.line_total for line in self.cart), Decimal("0"))

    def cart_item_count(self) -> int:
        return sum(line.quantity for line in self.cart)

    def _check_changes(self, changes: dict[str, Any]) -> None:
        unknown = set(changes) - _MERGEABLE_FIELDS
        if unknown:
            raise TypeError(f"Unknown conversation fields: {', '.join(sorted(unknown))}")

    def _apply(self, target: ConversationState, changes: dict[str, Any], *, forced: bool) -> None:
        now = utcnow()
        self.transition_log.append(
            TransitionRecord(from_state=self.state, to_state=target, timestamp=now, forced=forced)
        )
        self.state = target
        for name, value in changes.items():
            setattr(self, name, value)
        self.last_activity = now
