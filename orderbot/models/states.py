"""Enumerations shared by the conversation model and the transition table."""

from enum import Enum


class ConversationState(str, Enum):
    """Stages of the ordering flow."""

    IDLE = "idle"
    GREETING = "greeting"
    BROWSING_MENU = "browsing_menu"
    SELECTING_CATEGORY = "selecting_category"
    SELECTING_PRODUCT = "selecting_product"
    ADDING_TO_CART = "adding_to_cart"
    VIEWING_CART = "viewing_cart"
    CHECKOUT_ADDRESS = "checkout_address"
    CHECKOUT_PAYMENT = "checkout_payment"
    CHECKOUT_CONFIRM = "checkout_confirm"
    WAITING_EXTERNAL_PAYMENT = "waiting_external_payment"
    ORDER_PLACED = "order_placed"
    TRACKING_ORDER = "tracking_order"
    SUPPORT = "support"
    ADMIN_COMMAND = "admin_command"


class PaymentMethod(str, Enum):
    """Payment methods offered at checkout."""

    CASH = "efectivo"
    BANK_TRANSFER = "transferencia"
    MOBILE_WALLET = "mercadopago"
