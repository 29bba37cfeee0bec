"""Operational endpoints over the conversation registry."""

from fastapi import APIRouter, Depends, HTTPException

from orderbot.api.v1.dependencies import get_registry, get_snapshot_store
from orderbot.schemas.messages import RegistryStatsResponse
from orderbot.services.conversation_manager import ConversationRegistry
from orderbot.services.snapshot_store import ConversationSnapshotStore

router = APIRouter(prefix="/sessions")


@router.get("/stats", response_model=RegistryStatsResponse)
async def session_stats(registry: ConversationRegistry = Depends(get_registry)) -> RegistryStatsResponse:
    """Return live conversation counts by tenant and by state."""
    stats = registry.stats()
    return RegistryStatsResponse(total=stats.total, by_tenant=stats.by_tenant, by_state=stats.by_state)


@router.delete("/{tenant_id}/{user_id}")
async def end_session(
    tenant_id: str,
    user_id: str,
    registry: ConversationRegistry = Depends(get_registry),
    snapshot_store: ConversationSnapshotStore | None = Depends(get_snapshot_store),
) -> dict[str, str]:
    """Explicitly end one conversation, dropping any stored snapshot of it."""
    if not registry.remove(tenant_id, user_id):
        raise HTTPException(status_code=404, detail="Conversation not found.")
    if snapshot_store is not None:
        snapshot_store.delete(tenant_id, user_id)
    return {"status": "removed"}
