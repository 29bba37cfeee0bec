"""Schemas for the messaging, payment and session endpoints."""

from pydantic import BaseModel, Field


class InboundMessageRequest(BaseModel):
    """Request body for /messages."""

    tenant_id: str = Field(..., min_length=1, description="Store identifier", examples=["store-1"])
    user_id: str = Field(..., min_length=1, description="End-user identifier", examples=["+5491122334455"])
    message: str = Field(..., min_length=1, description="Inbound user message", examples=["hola"])


class BotReplyResponse(BaseModel):
    """Response payload for /messages."""

    user_id: str
    response: str
    quick_replies: list[str] = Field(default_factory=list)


class PaymentNotificationRequest(BaseModel):
    """Out-of-band payment result reported by the payment backend."""

    tenant_id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
    order_id: str = Field(..., min_length=1)
    approved: bool


class PaymentNotificationResponse(BaseModel):
    status: str


class RegistryStatsResponse(BaseModel):
    total: int
    by_tenant: dict[str, int]
    by_state: dict[str, int]
