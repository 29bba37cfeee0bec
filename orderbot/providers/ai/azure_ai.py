from typing import Any

from openai import AsyncAzureOpenAI

from orderbot.core.settings import Settings, settings as default_settings
from orderbot.interfaces.ai_provider import AIProvider

SUPPORT_PROMPT = (
    "Sos el asistente de atención al cliente de un local de comidas con delivery. "
    "Respondé de forma clara, breve y amable. Si la consulta es sobre un pedido, "
    "pedí el número de pedido."
)


class AzureAIProvider(AIProvider):
    def __init__(self, settings: Settings | None = None):
        settings = settings or default_settings
        if not settings.azure_openai_api_key:
            raise RuntimeError("AZURE_OPENAI_API_KEY not configured")

        self.client = AsyncAzureOpenAI(
            api_key=settings.azure_openai_api_key,
            api_version=settings.azure_openai_api_version,
            azure_endpoint=settings.azure_openai_endpoint,
        )

        self.deployment = settings.azure_openai_deployment

    async def generate_response(self, message: str, context: dict[str, Any]) -> str:
        system_prompt = SUPPORT_PROMPT
        categories = context.get("categories")
        if categories:
            system_prompt += f" Categorías del menú: {', '.join(categories)}."

        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": message},
        ]

        response = await self.client.chat.completions.create(
            model=self.deployment,
            messages=messages,
            temperature=0.7,
            max_tokens=300,
        )

        return response.choices[0].message.content or ""
