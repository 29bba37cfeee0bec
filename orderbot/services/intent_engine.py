"""Rule-based intent detection for inbound messages with score-based ranking."""

from __future__ import annotations

import re
import unicodedata
from enum import Enum
from typing import Mapping


class Intent(str, Enum):
    GREETING = "greeting"
    SHOW_MENU = "show_menu"
    SHOW_CART = "show_cart"
    TRACK_ORDER = "track_order"
    SUPPORT = "support"
    ADMIN = "admin"
    END_SESSION = "end_session"
    AFFIRM = "affirm"
    DENY = "deny"
    BACK = "back"
    FINALIZE = "finalize"
    CLEAR_CART = "clear_cart"
    CONTINUE_SHOPPING = "continue_shopping"
    ANOTHER_PRODUCT = "another_product"
    UNKNOWN = "unknown"


DEFAULT_KEYWORDS: Mapping[Intent, tuple[str, ...]] = {
    Intent.GREETING: (
        "hola",
        "hello",
        "hi",
        "buenas",
        "buenos dias",
        "buenas tardes",
        "buenas noches",
        "que tal",
        "saludos",
    ),
    Intent.SHOW_MENU: ("menu", "carta", "ver menu", "productos", "catalogo"),
    Intent.SHOW_CART: ("carrito", "cart", "mi carrito", "ver carrito"),
    Intent.TRACK_ORDER: ("pedido", "seguir pedido", "seguimiento", "tracking", "estado de mi pedido"),
    Intent.SUPPORT: ("ayuda", "soporte", "consulta", "asesor", "reclamo", "problema"),
    Intent.ADMIN: ("admin", "ayuda_admin", "estado_tienda", "pausar_tienda", "reanudar_tienda", "ver_pendientes"),
    Intent.END_SESSION: ("chau", "adios", "terminar", "finalizar sesion", "hasta luego"),
    Intent.AFFIRM: ("si", "yes", "confirmo", "confirmar", "dale", "ok", "agregar", "correcto", "acepto"),
    Intent.DENY: ("no", "cancelar", "cancela", "anular", "no quiero"),
    Intent.BACK: ("volver", "atras", "regresar", "salir"),
    Intent.FINALIZE: ("finalizar", "finalizar pedido", "pedir", "checkout", "pagar"),
    Intent.CLEAR_CART: ("vaciar", "limpiar", "borrar", "vaciar carrito"),
    Intent.CONTINUE_SHOPPING: ("seguir comprando", "continuar", "agregar mas", "seguir"),
    Intent.ANOTHER_PRODUCT: ("otro", "otro producto", "ver otro"),
}

DEFAULT_PRIORITY: tuple[Intent, ...] = (
    Intent.ADMIN,
    Intent.END_SESSION,
    Intent.CLEAR_CART,
    Intent.CONTINUE_SHOPPING,
    Intent.FINALIZE,
    Intent.DENY,
    Intent.BACK,
    Intent.ANOTHER_PRODUCT,
    Intent.AFFIRM,
    Intent.SHOW_CART,
    Intent.TRACK_ORDER,
    Intent.SHOW_MENU,
    Intent.SUPPORT,
    Intent.GREETING,
)


def normalize_text(message: str) -> str:
    """Lowercase, strip accents and collapse whitespace."""
    lowered = message.lower().strip()
    decomposed = unicodedata.normalize("NFD", lowered)
    no_accents = "".join(char for char in decomposed if unicodedata.category(char) != "Mn")
    return re.sub(r"\s+", " ", no_accents)


class IntentClassifier:
    """Detects user intent using keyword scoring and explicit tie-breaking priority.

    Keyword tables and priority can be replaced per tenant by building a new
    classifier and passing it through the order context.
    """

    def __init__(
        self,
        keywords: Mapping[Intent, tuple[str, ...]] | None = None,
        priority: tuple[Intent, ...] | None = None,
    ) -> None:
        self._intent_keywords = dict(keywords or DEFAULT_KEYWORDS)
        self._priority_order = priority or DEFAULT_PRIORITY

    def classify(self, message: str) -> Intent:
        """Return an intent based on keyword score and configured priority."""
        normalized_message = normalize_text(message)
        scores = {
            intent: self._count_matches(normalized_message, keywords)
            for intent, keywords in self._intent_keywords.items()
        }
        best_score = max(scores.values(), default=0)
        if best_score == 0:
            return Intent.UNKNOWN

        tied_intents = {intent for intent, score in scores.items() if score == best_score}
        for intent in self._priority_order:
            if intent in tied_intents:
                return intent
        return Intent.UNKNOWN

    def _count_matches(self, message: str, keywords: tuple[str, ...]) -> int:
        score = 0
        for keyword in keywords:
            if self._keyword_in_text(message, keyword):
                score += 1
        return score

    def _keyword_in_text(self, text: str, keyword: str) -> bool:
        """Match phrases by substring and single tokens by word boundary."""
        if " " in keyword:
            return keyword in text
        return re.search(rf"\b{re.escape(keyword)}\b", text) is not None


default_classifier = IntentClassifier()
