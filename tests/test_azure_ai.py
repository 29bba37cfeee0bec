"""Unit tests for the Azure OpenAI support provider."""

from __future__ import annotations

import unittest
from types import SimpleNamespace
from typing import Any

from openai import AsyncAzureOpenAI

from orderbot.core.settings import Settings
from orderbot.providers.ai.azure_ai import AzureAIProvider


class StubCompletions:
    """Async chat completions endpoint that records requests."""

    def __init__(self) -> None:
        self.requests: list[dict[str, Any]] = []

    async def create(self, **kwargs: Any) -> SimpleNamespace:
        self.requests.append(kwargs)
        message = SimpleNamespace(content="Abrimos de 19 a 23 hs.")
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class AzureAIProviderTestCase(unittest.IsolatedAsyncioTestCase):
    """Covers prompt building and the awaited completion call."""

    def setUp(self) -> None:
        settings = Settings(
            _env_file=None,
            azure_openai_endpoint="https://example.openai.azure.com",
            azure_openai_api_key="test-key",
            azure_openai_deployment="support-bot",
            azure_openai_api_version="2024-06-01",
        )
        self.provider = AzureAIProvider(settings)
        self.completions = StubCompletions()
        self.provider.client = SimpleNamespace(chat=SimpleNamespace(completions=self.completions))

    async def test_generate_response_awaits_completion(self) -> None:
        answer = await self.provider.generate_response(
            message="¿a qué hora abren?",
            context={"categories": ["Pizzas", "Bebidas"]},
        )

        self.assertEqual(answer, "Abrimos de 19 a 23 hs.")
        request = self.completions.requests[0]
        self.assertEqual(request["model"], "support-bot")
        self.assertIn("Pizzas, Bebidas", request["messages"][0]["content"])
        self.assertEqual(request["messages"][1], {"role": "user", "content": "¿a qué hora abren?"})

    def test_missing_api_key_is_rejected(self) -> None:
        with self.assertRaises(RuntimeError):
            AzureAIProvider(Settings(_env_file=None, azure_openai_api_key=None))

    def test_client_is_async(self) -> None:
        provider = AzureAIProvider(
            Settings(
                _env_file=None,
                azure_openai_endpoint="https://example.openai.azure.com",
                azure_openai_api_key="test-key",
                azure_openai_api_version="2024-06-01",
            )
        )

        self.assertIsInstance(provider.client, AsyncAzureOpenAI)


if __name__ == "__main__":
    unittest.main()
