"""Mock AI provider implementation."""

from typing import Any

from orderbot.interfaces.ai_provider import AIProvider


class MockAIProvider(AIProvider):
    """Simple AI provider used for local testing."""

    async def generate_response(self, message: str, context: dict[str, Any]) -> str:
        categories = context.get("categories", [])
        category_names = ", ".join(categories) if categories else "sin categorías"
        return (
            f"Recibimos tu consulta: '{message}'. "
            f"Categorías disponibles: {category_names}."
        )
