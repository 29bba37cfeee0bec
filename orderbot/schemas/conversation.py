"""Serialized conversation snapshots used for export and import."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field

from orderbot.models.conversation import CartLine, CartOption, Conversation, Product, TransitionRecord
from orderbot.models.states import ConversationState, PaymentMethod


class _Snapshot(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="forbid")


class CartOptionSnapshot(_Snapshot):
    option_id: str
    name: str
    price_modifier: Decimal


class CartLineSnapshot(_Snapshot):
    product_id: str
    product_name: str
    unit_price: Decimal
    quantity: int = Field(..., ge=1)
    options: list[CartOptionSnapshot] = Field(default_factory=list)


class ProductSnapshot(_Snapshot):
    product_id: str
    name: str
    price: Decimal
    description: str | None = None


class TransitionSnapshot(_Snapshot):
    from_state: ConversationState
    to_state: ConversationState
    timestamp: datetime
    forced: bool = False


class ConversationSnapshot(_Snapshot):
    """Lossless representation of a conversation for handoff across processes."""

    tenant_id: str
    user_id: str
    state: ConversationState
    cart: list[CartLineSnapshot] = Field(default_factory=list)
    address: str | None = None
    payment_method: PaymentMethod | None = None
    pending_order_id: str | None = None
    selected_category_id: str | None = None
    selected_product: ProductSnapshot | None = None
    last_activity: datetime
    transition_log: list[TransitionSnapshot] = Field(default_factory=list)

    def to_conversation(self) -> Conversation:
        selected_product = None
        if self.selected_product is not None:
            selected_product = Product(**self.selected_product.model_dump())
        return Conversation(
            tenant_id=self.tenant_id,
            user_id=self.user_id,
            state=self.state,
            cart=[
                CartLine(
                    product_id=line.product_id,
                    product_name=line.product_name,
                    unit_price=line.unit_price,
                    quantity=line.quantity,
                    options=tuple(CartOption(**option.model_dump()) for option in line.options),
                )
                for line in self.cart
            ],
            address=self.address,
            payment_method=self.payment_method,
            pending_order_id=self.pending_order_id,
            selected_category_id=self.selected_category_id,
            selected_product=selected_product,
            last_activity=self.last_activity,
            transition_log=[TransitionRecord(**record.model_dump()) for record in self.transition_log],
        )


def export_conversation(conversation: Conversation) -> dict[str, Any]:
    """Return a JSON-compatible dict holding every field of ``conversation``."""
    return ConversationSnapshot.model_validate(conversation).model_dump(mode="json")


def import_conversation(data: Mapping[str, Any]) -> Conversation:
    """Rebuild a conversation from :func:`export_conversation` output."""
    return ConversationSnapshot.model_validate(dict(data)).to_conversation()
