"""FastAPI entrypoint for the ordering bot."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import AsyncIterator

from fastapi import FastAPI

from orderbot.api.v1.router import api_router
from orderbot.core.settings import Settings, settings as default_settings
from orderbot.db.session import build_engine, build_session_factory
from orderbot.interfaces.ai_provider import AIProvider
from orderbot.models.context import PaymentDestination
from orderbot.providers.ai.azure_ai import AzureAIProvider
from orderbot.providers.ai.mock_ai import MockAIProvider
from orderbot.providers.data_sources.mock_data import MockCatalog, MockOrderBackend, MockStoreAdmin
from orderbot.providers.messaging.mock_messaging import MockMessagingProvider
from orderbot.services.bot_service import BotService
from orderbot.services.conversation_manager import ConversationRegistry
from orderbot.services.flow_manager import FlowManager
from orderbot.services.snapshot_store import ConversationSnapshotStore

logger = logging.getLogger(__name__)


def _build_ai_provider(settings: Settings) -> AIProvider:
    if settings.azure_openai_api_key:
        return AzureAIProvider(settings)
    return MockAIProvider()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application with its own registry, services and sweep lifecycle."""
    settings = settings or default_settings
    logging.basicConfig(level=settings.log_level.upper())

    registry = ConversationRegistry(
        timeout=timedelta(minutes=settings.session_timeout_minutes),
        sweep_interval=settings.sweep_interval_seconds,
    )
    order_backend = MockOrderBackend(delivery_fee=settings.delivery_fee)
    bot_service = BotService(
        flow_manager=FlowManager(registry=registry),
        messaging_provider=MockMessagingProvider(),
        catalog=MockCatalog(delivery_fee=settings.delivery_fee),
        order_backend=order_backend,
        ai_provider=_build_ai_provider(settings),
        store_admin=MockStoreAdmin(order_backend=order_backend),
        payment_destination=PaymentDestination(
            alias=settings.transfer_alias,
            cvu=settings.transfer_cvu,
            holder=settings.transfer_holder,
        ),
        estimated_delivery=settings.estimated_delivery,
        admin_phones=settings.admin_phones,
    )

    snapshot_store = None
    if settings.database_url:
        snapshot_store = ConversationSnapshotStore(build_session_factory(build_engine(settings.database_url)))

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if snapshot_store is not None:
            restored = registry.restore(snapshot_store.load_all())
            logger.info("Restored %d conversations", restored)
        await registry.start()
        try:
            yield
        finally:
            await registry.stop()
            if snapshot_store is not None:
                registry.sweep()
                snapshot_store.save_all(registry.conversations())

    app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)
    app.state.settings = settings
    app.state.registry = registry
    app.state.bot_service = bot_service
    app.state.snapshot_store = snapshot_store

    @app.get("/")
    async def health_check() -> dict[str, str]:
        """Simple health endpoint to validate service status."""
        return {"status": "ok", "message": f"{settings.app_name} backend is running"}

    # Mount API v1 routes under /api/v1.
    app.include_router(api_router, prefix="/api/v1")
    return app


app = create_app()
