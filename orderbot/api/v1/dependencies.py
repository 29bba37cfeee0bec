"""Request dependencies resolving the services owned by the application."""

from fastapi import Request

from orderbot.services.bot_service import BotService
from orderbot.services.conversation_manager import ConversationRegistry
from orderbot.services.snapshot_store import ConversationSnapshotStore


def get_bot_service(request: Request) -> BotService:
    return request.app.state.bot_service


def get_registry(request: Request) -> ConversationRegistry:
    return request.app.state.registry


def get_snapshot_store(request: Request) -> ConversationSnapshotStore | None:
    """Return the snapshot store, or None when no database is configured."""
    return request.app.state.snapshot_store
