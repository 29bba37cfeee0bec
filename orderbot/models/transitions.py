"""Static table of allowed conversation state transitions."""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from orderbot.models.states import ConversationState

S = ConversationState

TRANSITIONS: Mapping[ConversationState, frozenset[ConversationState]] = MappingProxyType(
    {
        S.IDLE: frozenset(
            {
                S.GREETING,
                S.BROWSING_MENU,
                S.VIEWING_CART,
                S.TRACKING_ORDER,
                S.SUPPORT,
                S.ADMIN_COMMAND,
            }
        ),
        S.GREETING: frozenset({S.BROWSING_MENU, S.VIEWING_CART, S.TRACKING_ORDER, S.IDLE}),
        S.BROWSING_MENU: frozenset({S.SELECTING_CATEGORY, S.SELECTING_PRODUCT, S.VIEWING_CART, S.IDLE}),
        S.SELECTING_CATEGORY: frozenset({S.SELECTING_PRODUCT, S.ADDING_TO_CART, S.BROWSING_MENU, S.IDLE}),
        S.SELECTING_PRODUCT: frozenset({S.ADDING_TO_CART, S.SELECTING_CATEGORY, S.BROWSING_MENU, S.IDLE}),
        S.ADDING_TO_CART: frozenset({S.VIEWING_CART, S.SELECTING_PRODUCT, S.BROWSING_MENU, S.IDLE}),
        S.VIEWING_CART: frozenset({S.CHECKOUT_ADDRESS, S.BROWSING_MENU, S.IDLE}),
        S.CHECKOUT_ADDRESS: frozenset({S.CHECKOUT_PAYMENT, S.VIEWING_CART, S.IDLE}),
        S.CHECKOUT_PAYMENT: frozenset({S.CHECKOUT_CONFIRM, S.CHECKOUT_ADDRESS, S.IDLE}),
        S.CHECKOUT_CONFIRM: frozenset(
            {
                S.WAITING_EXTERNAL_PAYMENT,
                S.ORDER_PLACED,
                S.VIEWING_CART,
                S.CHECKOUT_PAYMENT,
                S.IDLE,
            }
        ),
        # Left only through a payment notification or a timeout reset.
        S.WAITING_EXTERNAL_PAYMENT: frozenset({S.ORDER_PLACED, S.IDLE}),
        S.ORDER_PLACED: frozenset({S.IDLE}),
        S.TRACKING_ORDER: frozenset({S.IDLE}),
        S.SUPPORT: frozenset({S.IDLE}),
        S.ADMIN_COMMAND: frozenset({S.IDLE}),
    }
)

del S


def allowed_targets(state: ConversationState) -> frozenset[ConversationState]:
    """Return the states reachable from ``state`` in one transition."""
    return TRANSITIONS.get(state, frozenset())


def can_transition(current: ConversationState, target: ConversationState) -> bool:
    return target in allowed_targets(current)
