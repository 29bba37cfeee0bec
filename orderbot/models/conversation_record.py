"""Persisted conversation snapshot model."""

from __future__ import annotations

from typing import Any

from sqlalchemy import JSON, Index, String, TIMESTAMP, func
from sqlalchemy.orm import Mapped, mapped_column

from orderbot.db.base import Base


class ConversationRecord(Base):
    """Exported conversation kept across process restarts."""

    __tablename__ = "conversation_snapshots"
    __table_args__ = (
        Index("ix_conversation_snapshots_last_activity", "last_activity"),
    )

    tenant_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    state: Mapped[str] = mapped_column(String(32), nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    last_activity: Mapped[Any] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    updated_at: Mapped[Any] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
