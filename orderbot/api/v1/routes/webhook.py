"""Endpoints for inbound chat messages and payment notifications."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from orderbot.api.v1.dependencies import get_bot_service
from orderbot.schemas.messages import (
    BotReplyResponse,
    InboundMessageRequest,
    PaymentNotificationRequest,
    PaymentNotificationResponse,
)
from orderbot.services.bot_service import BotService

router = APIRouter()


@router.post("/messages", response_model=BotReplyResponse)
async def receive_message(
    payload: InboundMessageRequest,
    bot_service: BotService = Depends(get_bot_service),
) -> BotReplyResponse:
    """Run one message through the ordering flow and return the reply."""
    reply = await bot_service.handle_message(
        tenant_id=payload.tenant_id,
        user_id=payload.user_id,
        message=payload.message,
    )
    return BotReplyResponse(user_id=payload.user_id, response=reply.text, quick_replies=reply.quick_replies)


@router.post("/webhook/messages")
async def receive_webhook(
    payload: dict[str, Any],
    bot_service: BotService = Depends(get_bot_service),
) -> dict[str, Any]:
    """Receive a WhatsApp Cloud style payload and route each text message."""
    normalized_messages = _normalize_webhook_payload(payload=payload)
    for message in normalized_messages:
        try:
            await bot_service.handle_message(**message)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"status": "accepted", "messages": len(normalized_messages)}


@router.post("/payments/notify", response_model=PaymentNotificationResponse)
async def notify_payment(
    payload: PaymentNotificationRequest,
    bot_service: BotService = Depends(get_bot_service),
) -> PaymentNotificationResponse:
    """Report an approved or rejected payment back into a waiting conversation."""
    delivered = await bot_service.notify_payment_result(
        tenant_id=payload.tenant_id,
        user_id=payload.user_id,
        order_id=payload.order_id,
        approved=payload.approved,
    )
    return PaymentNotificationResponse(status="delivered" if delivered else "ignored")


def _normalize_webhook_payload(payload: dict[str, Any]) -> list[dict[str, str]]:
    # Flat payload (manual testing).
    if payload.get("tenant_id") and payload.get("user_id") and payload.get("message"):
        return [
            {
                "tenant_id": str(payload["tenant_id"]),
                "user_id": str(payload["user_id"]),
                "message": str(payload["message"]).strip(),
            }
        ]

    normalized_messages: list[dict[str, str]] = []
    entries = payload.get("entry")
    if not isinstance(entries, list):
        return normalized_messages

    for entry in entries:
        if not isinstance(entry, dict):
            continue
        changes = entry.get("changes")
        if not isinstance(changes, list):
            continue
        for change in changes:
            if not isinstance(change, dict):
                continue
            value = change.get("value")
            if not isinstance(value, dict):
                continue
            metadata = value.get("metadata") if isinstance(value.get("metadata"), dict) else {}
            tenant_id = payload.get("tenant_id") or metadata.get("phone_number_id") or entry.get("id")
            messages = value.get("messages")
            if tenant_id is None or not isinstance(messages, list):
                continue
            normalized_messages.extend(_normalize_messages(messages=messages, tenant_id=str(tenant_id)))

    return normalized_messages


def _normalize_messages(messages: list[Any], tenant_id: str) -> list[dict[str, str]]:
    normalized: list[dict[str, str]] = []
    for message in messages:
        if not isinstance(message, dict):
            continue

        sender = message.get("from")
        text = _extract_text(message=message)
        if sender is None or text is None:
            continue

        normalized.append({"tenant_id": tenant_id, "user_id": str(sender), "message": text})
    return normalized


def _extract_text(*, message: dict[str, Any]) -> str | None:
    text_payload = message.get("text")
    if isinstance(text_payload, dict):
        body = text_payload.get("body")
        if body is not None and str(body).strip():
            return str(body).strip()

    # Quick-reply buttons arrive as interactive replies carrying the button title.
    interactive = message.get("interactive")
    if isinstance(interactive, dict):
        for key in ("button_reply", "list_reply"):
            reply = interactive.get(key)
            if isinstance(reply, dict) and str(reply.get("title", "")).strip():
                return str(reply["title"]).strip()

    return None
