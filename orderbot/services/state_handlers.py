"""Per-state message handlers for the ordering flow.

Each handler receives the raw message text, the conversation and the order
context for this call, applies its transition to the conversation through the
transition table, and returns the reply to send back. Handlers never raise on
unrecognized input; they re-prompt and leave the state as it was.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Awaitable, Callable, Mapping, Sequence

from orderbot.models.context import HandlerReply, OrderContext
from orderbot.models.conversation import Conversation, Product
from orderbot.models.states import ConversationState, PaymentMethod
from orderbot.services.intent_engine import Intent, IntentClassifier, default_classifier, normalize_text

logger = logging.getLogger(__name__)

S = ConversationState

Handler = Callable[[str, Conversation, OrderContext], Awaitable[HandlerReply]]

MIN_ADDRESS_LENGTH = 10
MAX_QUANTITY = 10

MAIN_OPTIONS = ["📋 Ver Menú", "🛒 Mi Carrito", "📍 Seguir Pedido"]
CART_OPTIONS = ["✅ Finalizar Pedido", "📋 Seguir Comprando", "🗑️ Vaciar Carrito"]
PRODUCT_OPTIONS = ["✅ Agregar al carrito", "📋 Volver al menú"]
PAYMENT_OPTIONS = ["💵 Efectivo", "🏦 Transferencia", "📱 MercadoPago"]
CONFIRM_OPTIONS = ["✅ Sí, confirmar", "❌ No, cancelar"]

PAYMENT_LABELS = {
    PaymentMethod.CASH: "Efectivo",
    PaymentMethod.BANK_TRANSFER: "Transferencia",
    PaymentMethod.MOBILE_WALLET: "MercadoPago",
}

APOLOGY = "😔 Lo sentimos, tuvimos un problema procesando tu solicitud. Por favor, intenta nuevamente en unos minutos."

HELP_TEXT = (
    "¡Hola! 👋 ¿Cómo puedo ayudarte?\n\n"
    "Escribe:\n"
    "• *menu* para ver nuestros productos\n"
    "• *carrito* para ver tu carrito\n"
    "• *pedido* para seguir tu pedido\n"
    "• *ayuda* para hablar con soporte"
)

ADMIN_HELP_TEXT = (
    "🛠️ *COMANDOS DE ADMINISTRADOR*\n\n"
    "• *estado_tienda*\n"
    "• *pausar_tienda*\n"
    "• *reanudar_tienda*\n"
    "• *ver_pendientes*"
)

_ADMIN_HELP_WORDS = {"admin", "ayuda_admin"}


@dataclass(frozen=True, slots=True)
class OrderTotals:
    subtotal: Decimal
    delivery_fee: Decimal
    total: Decimal


def order_totals(conversation: Conversation, delivery_fee: Decimal) -> OrderTotals:
    """Single place where the delivery fee is added to the cart subtotal."""
    subtotal = conversation.cart_total()
    return OrderTotals(subtotal=subtotal, delivery_fee=delivery_fee, total=subtotal + delivery_fee)


def _classifier(context: OrderContext) -> IntentClassifier:
    return context.classifier or default_classifier


def _parse_index(text: str) -> int | None:
    match = re.fullmatch(r"\s*(\d{1,3})\s*", text)
    if match is None:
        return None
    return int(match.group(1))


def _money(value: Decimal) -> str:
    return f"${value:.2f}"


# ============ FORMATTERS ============


def format_categories(context: OrderContext) -> str:
    lines = ["📋 *MENÚ*", "", "Selecciona una categoría:"]
    for index, category in enumerate(context.categories, start=1):
        lines.append(f"{index}. {category.name}")
    return "\n".join(lines)


def format_products(products: Sequence[Product]) -> str:
    return "\n".join(
        f"{index}. {product.name} - {_money(product.price)}" for index, product in enumerate(products, start=1)
    )


def format_cart_items(conversation: Conversation) -> str:
    lines = []
    for index, line in enumerate(conversation.cart, start=1):
        options = ""
        if line.options:
            options = f" ({', '.join(option.name for option in line.options)})"
        lines.append(f"{index}. {line.quantity}x {line.product_name}{options} - {_money(line.line_total)}")
    return "\n".join(lines)


def format_cart(conversation: Conversation) -> str:
    if not conversation.cart:
        return "🛒 *TU CARRITO*\n\n_El carrito está vacío_"
    return (
        "🛒 *TU CARRITO*\n\n"
        f"{format_cart_items(conversation)}\n"
        "━━━━━━━━━━━━━━\n"
        f"📦 *Unidades:* {conversation.cart_item_count()}\n"
        f"💰 *Total:* {_money(conversation.cart_total())}"
    )


def format_product_detail(product: Product) -> str:
    text = f"📦 *{product.name.upper()}*\n\n"
    if product.description:
        text += f"{product.description}\n\n"
    text += f"💰 *Precio:* {_money(product.price)}\n\n¿Cuántas unidades deseas agregar? (1-{MAX_QUANTITY})"
    return text


def format_order_summary(conversation: Conversation, context: OrderContext) -> str:
    totals = order_totals(conversation, context.delivery_fee)
    payment = PAYMENT_LABELS[conversation.payment_method]
    return (
        "📋 *RESUMEN DEL PEDIDO*\n\n"
        f"{format_cart_items(conversation)}\n\n"
        f"📍 *Dirección:* {conversation.address}\n"
        f"💳 *Pago:* {payment}\n\n"
        f"💰 *Subtotal:* {_money(totals.subtotal)}\n"
        f"🚗 *Envío:* {_money(totals.delivery_fee)}\n"
        "━━━━━━━━━━━━━━\n"
        f"💵 *TOTAL:* {_money(totals.total)}\n\n"
        "¿Confirmas el pedido?\n\n✅ *SI* para confirmar\n❌ *NO* para cancelar"
    )


def _payment_prompt() -> str:
    return "💳 *MÉTODO DE PAGO*\n\nSelecciona cómo deseas pagar:\n\n1️⃣ Efectivo\n2️⃣ Transferencia\n3️⃣ MercadoPago"


def _cart_options(conversation: Conversation) -> list[str]:
    return list(CART_OPTIONS) if conversation.cart else ["📋 Ver Menú"]


def resolve_payment_method(text: str) -> PaymentMethod | None:
    normalized = normalize_text(text)
    if normalized == "1" or "efectivo" in normalized or "cash" in normalized:
        return PaymentMethod.CASH
    if normalized == "2" or "transfer" in normalized:
        return PaymentMethod.BANK_TRANSFER
    if normalized == "3" or "mercado" in normalized or "billetera" in normalized:
        return PaymentMethod.MOBILE_WALLET
    return None


# ============ SHARED MOVES ============


def _show_menu(conversation: Conversation, context: OrderContext, **changes) -> HandlerReply:
    if not context.categories:
        return HandlerReply(text="😔 El menú no está disponible en este momento. Intenta más tarde.")
    if conversation.state != S.BROWSING_MENU and not conversation.transition(S.BROWSING_MENU, **changes):
        return HandlerReply(text=HELP_TEXT)
    return HandlerReply(text=format_categories(context))


def _show_cart(conversation: Conversation) -> HandlerReply:
    if not conversation.transition(S.VIEWING_CART):
        return HandlerReply(text=HELP_TEXT)
    return HandlerReply(text=format_cart(conversation), quick_replies=_cart_options(conversation))


# ============ HANDLERS ============


async def handle_idle(text: str, conversation: Conversation, context: OrderContext) -> HandlerReply:
    intent = _classifier(context).classify(text)

    if intent == Intent.GREETING:
        conversation.transition(S.GREETING)
        greeting = context.greeting or "¡Hola! 👋 Bienvenido a nuestro local. ¿En qué puedo ayudarte?"
        return HandlerReply(text=greeting, quick_replies=list(MAIN_OPTIONS))

    if intent == Intent.SHOW_MENU:
        return _show_menu(conversation, context)

    if intent == Intent.SHOW_CART:
        return _show_cart(conversation)

    if intent == Intent.TRACK_ORDER:
        conversation.transition(S.TRACKING_ORDER)
        return HandlerReply(
            text="📍 Para ver el estado de tu pedido, envíame el número de pedido o tu código de seguimiento."
        )

    if intent == Intent.SUPPORT:
        conversation.transition(S.SUPPORT)
        return HandlerReply(text="💬 Contanos tu consulta y te respondemos enseguida.")

    if intent == Intent.ADMIN and context.is_admin:
        conversation.transition(S.ADMIN_COMMAND)
        if normalize_text(text) in _ADMIN_HELP_WORDS:
            return HandlerReply(text=ADMIN_HELP_TEXT)
        # A concrete command runs right away.
        return await handle_admin_command(text, conversation, context)

    return HandlerReply(text=HELP_TEXT)


_GREETING_SHORTCUTS = {"1": Intent.SHOW_MENU, "2": Intent.SHOW_CART, "3": Intent.TRACK_ORDER}


async def handle_greeting(text: str, conversation: Conversation, context: OrderContext) -> HandlerReply:
    intent = _GREETING_SHORTCUTS.get(text.strip()) or _classifier(context).classify(text)

    if intent == Intent.SHOW_MENU:
        return _show_menu(conversation, context)

    if intent == Intent.SHOW_CART:
        return _show_cart(conversation)

    if intent == Intent.TRACK_ORDER:
        conversation.transition(S.TRACKING_ORDER)
        return HandlerReply(
            text="📍 Para ver el estado de tu pedido, envíame el número de pedido o tu código de seguimiento."
        )

    return HandlerReply(
        text="No entendí tu mensaje. Elige una opción o escribe *menu* para ver nuestros productos.",
        quick_replies=list(MAIN_OPTIONS),
    )


async def handle_browsing_menu(text: str, conversation: Conversation, context: OrderContext) -> HandlerReply:
    index = _parse_index(text)
    if index is not None and 1 <= index <= len(context.categories):
        category = context.categories[index - 1]
        conversation.transition(S.SELECTING_CATEGORY, selected_category_id=category.category_id)
        return HandlerReply(
            text=f"📂 *{category.name.upper()}*\n\nSelecciona un producto:",
            category_id=category.category_id,
        )

    intent = _classifier(context).classify(text)
    if intent == Intent.SHOW_CART:
        return _show_cart(conversation)

    if intent in {Intent.BACK, Intent.END_SESSION, Intent.DENY}:
        conversation.transition(S.IDLE)
        return HandlerReply(text="¡Hasta pronto! Escribe *menu* cuando quieras volver a ver nuestros productos.")

    return HandlerReply(text=f"Por favor, selecciona un número de categoría válido.\n\n{format_categories(context)}")


async def handle_selecting_product(text: str, conversation: Conversation, context: OrderContext) -> HandlerReply:
    """Resolve a product index against the product list of the selected category."""
    index = _parse_index(text)
    if index is not None and 1 <= index <= len(context.products):
        product = context.products[index - 1]
        conversation.transition(S.ADDING_TO_CART, selected_product=product)
        return HandlerReply(text=format_product_detail(product), quick_replies=list(PRODUCT_OPTIONS))

    intent = _classifier(context).classify(text)
    if intent in {Intent.BACK, Intent.SHOW_MENU, Intent.DENY}:
        return _show_menu(conversation, context, selected_category_id=None)

    if not context.products:
        return HandlerReply(text="😔 No hay productos disponibles en esta categoría. Escribe *volver* para ver el menú.")

    return HandlerReply(
        text="Por favor, selecciona un número de producto válido.",
        category_id=conversation.selected_category_id,
    )


async def handle_adding_to_cart(text: str, conversation: Conversation, context: OrderContext) -> HandlerReply:
    product = conversation.selected_product
    if product is None:
        return _show_menu(conversation, context)

    quantity: int | None = None
    number = _parse_index(text)
    intent = _classifier(context).classify(text)
    if number is not None:
        if not 1 <= number <= MAX_QUANTITY:
            return HandlerReply(text=f"⚠️ Puedes agregar entre 1 y {MAX_QUANTITY} unidades. ¿Cuántas deseas?")
        quantity = number
    elif intent == Intent.AFFIRM:
        quantity = 1

    if quantity is not None:
        conversation.add_to_cart(product, quantity)
        conversation.transition(S.VIEWING_CART, selected_product=None)
        prefix = f"{quantity}x " if quantity > 1 else ""
        return HandlerReply(
            text=f"✅ {prefix}*{product.name}* agregado al carrito!\n\n{format_cart(conversation)}",
            quick_replies=list(CART_OPTIONS),
        )

    if intent in {Intent.DENY, Intent.BACK, Intent.SHOW_MENU}:
        return _show_menu(conversation, context, selected_product=None)

    if intent == Intent.ANOTHER_PRODUCT:
        conversation.transition(S.SELECTING_PRODUCT, selected_product=None)
        return HandlerReply(text="Elige otro producto:", category_id=conversation.selected_category_id)

    return HandlerReply(
        text=f"¿Cuántas unidades deseas agregar? (1-{MAX_QUANTITY})",
        quick_replies=list(PRODUCT_OPTIONS),
    )


async def handle_viewing_cart(text: str, conversation: Conversation, context: OrderContext) -> HandlerReply:
    intent = _classifier(context).classify(text)

    if intent == Intent.FINALIZE:
        if not conversation.cart:
            return HandlerReply(
                text="🛒 Tu carrito está vacío. Escribe *menu* para ver nuestros productos.",
                quick_replies=["📋 Ver Menú"],
            )
        conversation.transition(S.CHECKOUT_ADDRESS)
        return HandlerReply(
            text=(
                "📍 *DIRECCIÓN DE ENTREGA*\n\n"
                "Por favor, envíame tu dirección completa (calle, número, entre calles, referencias):"
            )
        )

    if intent == Intent.CLEAR_CART:
        conversation.clear_cart()
        return HandlerReply(
            text="🗑️ Carrito vaciado. Escribe *menu* para ver nuestros productos.",
            quick_replies=["📋 Ver Menú"],
        )

    if intent in {Intent.CONTINUE_SHOPPING, Intent.SHOW_MENU, Intent.BACK}:
        return _show_menu(conversation, context)

    return HandlerReply(text=format_cart(conversation), quick_replies=_cart_options(conversation))


_ADDRESS_ESCAPES = {"volver", "atras", "cancelar"}


async def handle_checkout_address(text: str, conversation: Conversation, context: OrderContext) -> HandlerReply:
    address = text.strip()
    if normalize_text(address) in _ADDRESS_ESCAPES:
        conversation.transition(S.VIEWING_CART)
        return HandlerReply(text=format_cart(conversation), quick_replies=_cart_options(conversation))

    if len(address) < MIN_ADDRESS_LENGTH:
        return HandlerReply(text="⚠️ La dirección parece muy corta. Por favor, incluye calle, número y referencias.")

    conversation.transition(S.CHECKOUT_PAYMENT, address=address)
    return HandlerReply(
        text=f"📍 Dirección guardada:\n{address}\n\n{_payment_prompt()}",
        quick_replies=list(PAYMENT_OPTIONS),
    )


async def handle_checkout_payment(text: str, conversation: Conversation, context: OrderContext) -> HandlerReply:
    payment_method = resolve_payment_method(text)
    if payment_method is None:
        if _classifier(context).classify(text) == Intent.BACK:
            conversation.transition(S.CHECKOUT_ADDRESS, address=None)
            return HandlerReply(text="📍 Envíame nuevamente tu dirección completa:")
        return HandlerReply(
            text=f"⚠️ Por favor, selecciona un método de pago válido.\n\n{_payment_prompt()}",
            quick_replies=list(PAYMENT_OPTIONS),
        )

    conversation.transition(S.CHECKOUT_CONFIRM, payment_method=payment_method)
    return HandlerReply(text=format_order_summary(conversation, context), quick_replies=list(CONFIRM_OPTIONS))


async def handle_checkout_confirm(text: str, conversation: Conversation, context: OrderContext) -> HandlerReply:
    intent = _classifier(context).classify(text)

    if intent == Intent.AFFIRM:
        try:
            receipt = await context.create_order(conversation)
        except Exception:
            logger.exception("Order creation failed for %s:%s", conversation.tenant_id, conversation.user_id)
            return HandlerReply(text=f"{APOLOGY}\n\nEscribe *SI* para reintentar.", quick_replies=list(CONFIRM_OPTIONS))

        if conversation.payment_method == PaymentMethod.BANK_TRANSFER:
            conversation.transition(S.WAITING_EXTERNAL_PAYMENT, pending_order_id=receipt.order_id)
            destination = context.payment_destination
            lines = [
                f"✅ *PEDIDO #{receipt.order_number} CREADO*",
                "",
                "📲 Por favor, realiza la transferencia a:",
                "",
                f"🏦 *Alias:* {destination.alias}",
            ]
            if destination.cvu:
                lines.append(f"🔢 *CVU:* {destination.cvu}")
            if destination.holder:
                lines.append(f"👤 *Titular:* {destination.holder}")
            lines.append(f"💰 *Monto:* {_money(receipt.total)}")
            lines.append("")
            lines.append("Te avisaremos apenas se acredite el pago.")
            return HandlerReply(text="\n".join(lines))

        address = conversation.address
        payment = PAYMENT_LABELS[conversation.payment_method]
        conversation.cart.clear()
        conversation.transition(S.ORDER_PLACED, pending_order_id=receipt.order_id)
        return HandlerReply(
            text=(
                f"✅ *¡PEDIDO #{receipt.order_number} CONFIRMADO!*\n\n"
                f"📍 Dirección: {address}\n"
                f"💳 Pago: {payment}\n"
                f"💰 Total: {_money(receipt.total)}\n\n"
                f"⏱️ Tiempo estimado: {context.estimated_delivery}\n\n"
                "¡Gracias por tu compra! Te avisaremos cuando esté en camino. 🚗"
            )
        )

    if intent == Intent.DENY:
        conversation.transition(S.VIEWING_CART)
        return HandlerReply(
            text=f"❌ Pedido cancelado. Tu carrito sigue guardado.\n\n{format_cart(conversation)}",
            quick_replies=_cart_options(conversation),
        )

    return HandlerReply(
        text="¿Confirmas el pedido?\n\n✅ *SI* para confirmar\n❌ *NO* para cancelar",
        quick_replies=list(CONFIRM_OPTIONS),
    )


async def handle_waiting_external_payment(
    text: str, conversation: Conversation, context: OrderContext
) -> HandlerReply:
    return HandlerReply(
        text=(
            f"⏳ Estamos esperando la confirmación del pago de tu pedido ({conversation.pending_order_id}).\n"
            "Te avisaremos apenas se acredite."
        )
    )


async def handle_order_placed(text: str, conversation: Conversation, context: OrderContext) -> HandlerReply:
    conversation.transition(S.IDLE)
    return await handle_idle(text, conversation, context)


async def handle_tracking_order(text: str, conversation: Conversation, context: OrderContext) -> HandlerReply:
    if _classifier(context).classify(text) == Intent.BACK:
        conversation.transition(S.IDLE)
        return HandlerReply(text=HELP_TEXT)

    order_ref = text.strip().lstrip("#")
    if context.lookup_order_status is None:
        conversation.transition(S.IDLE)
        return HandlerReply(text=f"📦 Recibimos tu consulta por el pedido *{order_ref}*. Te responderemos a la brevedad.")

    try:
        status = await context.lookup_order_status(conversation.tenant_id, order_ref)
    except Exception:
        logger.exception("Order lookup failed for %s:%s", conversation.tenant_id, conversation.user_id)
        return HandlerReply(text=APOLOGY)

    conversation.transition(S.IDLE)
    if status is None:
        return HandlerReply(text=f"🔍 No encontramos el pedido *{order_ref}*. Verifica el número e intenta nuevamente.")
    return HandlerReply(text=f"📦 Pedido *{order_ref}*: {status}")


async def handle_support(text: str, conversation: Conversation, context: OrderContext) -> HandlerReply:
    if context.ai_provider is None:
        conversation.transition(S.IDLE)
        return HandlerReply(text="🙋 Recibimos tu consulta. Un integrante del equipo te contactará pronto.")

    try:
        answer = await context.ai_provider.generate_response(
            message=text,
            context={
                "tenant_id": conversation.tenant_id,
                "user_id": conversation.user_id,
                "categories": [category.name for category in context.categories],
            },
        )
    except Exception:
        logger.exception("Support answer failed for %s:%s", conversation.tenant_id, conversation.user_id)
        return HandlerReply(text=APOLOGY)

    conversation.transition(S.IDLE)
    return HandlerReply(text=answer, quick_replies=list(MAIN_OPTIONS))


async def handle_admin_command(text: str, conversation: Conversation, context: OrderContext) -> HandlerReply:
    if context.store_admin is None or not context.is_admin:
        conversation.transition(S.IDLE)
        return HandlerReply(text=HELP_TEXT)

    try:
        result = await context.store_admin.run_command(conversation.tenant_id, text)
    except Exception:
        logger.exception("Admin command failed for tenant %s", conversation.tenant_id)
        return HandlerReply(text=APOLOGY)

    conversation.transition(S.IDLE)
    return HandlerReply(text=result or ADMIN_HELP_TEXT)


HANDLERS: Mapping[ConversationState, Handler] = {
    S.IDLE: handle_idle,
    S.GREETING: handle_greeting,
    S.BROWSING_MENU: handle_browsing_menu,
    S.SELECTING_CATEGORY: handle_selecting_product,
    S.SELECTING_PRODUCT: handle_selecting_product,
    S.ADDING_TO_CART: handle_adding_to_cart,
    S.VIEWING_CART: handle_viewing_cart,
    S.CHECKOUT_ADDRESS: handle_checkout_address,
    S.CHECKOUT_PAYMENT: handle_checkout_payment,
    S.CHECKOUT_CONFIRM: handle_checkout_confirm,
    S.WAITING_EXTERNAL_PAYMENT: handle_waiting_external_payment,
    S.ORDER_PLACED: handle_order_placed,
    S.TRACKING_ORDER: handle_tracking_order,
    S.SUPPORT: handle_support,
    S.ADMIN_COMMAND: handle_admin_command,
}
