"""Persistence of exported conversations across process restarts."""

from __future__ import annotations

import logging
from typing import Iterable

from pydantic import ValidationError
from sqlalchemy import delete, select
from sqlalchemy.orm import Session, sessionmaker

from orderbot.models.conversation import Conversation
from orderbot.models.conversation_record import ConversationRecord
from orderbot.schemas.conversation import export_conversation, import_conversation

logger = logging.getLogger(__name__)


class ConversationSnapshotStore:
    """Saves and restores conversation snapshots through SQLAlchemy."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self.session_factory = session_factory

    def save_all(self, conversations: Iterable[Conversation]) -> int:
        """Replace the stored snapshots with ``conversations``."""
        records = [self._to_record(conversation) for conversation in conversations]
        with self.session_factory() as db:
            try:
                db.execute(delete(ConversationRecord))
                db.add_all(records)
                db.commit()
            except Exception:
                db.rollback()
                raise
        logger.info("Saved %d conversation snapshots", len(records))
        return len(records)

    def load_all(self) -> list[Conversation]:
        """Return every stored conversation, skipping snapshots that fail validation."""
        with self.session_factory() as db:
            records = db.execute(select(ConversationRecord)).scalars().all()
            conversations: list[Conversation] = []
            for record in records:
                try:
                    conversations.append(import_conversation(record.payload))
                except ValidationError:
                    logger.warning("Discarding invalid snapshot for %s:%s", record.tenant_id, record.user_id)
        return conversations

    def delete(self, tenant_id: str, user_id: str) -> None:
        with self.session_factory() as db:
            try:
                db.execute(
                    delete(ConversationRecord).where(
                        ConversationRecord.tenant_id == tenant_id,
                        ConversationRecord.user_id == user_id,
                    )
                )
                db.commit()
            except Exception:
                db.rollback()
                raise

    def _to_record(self, conversation: Conversation) -> ConversationRecord:
        return ConversationRecord(
            tenant_id=conversation.tenant_id,
            user_id=conversation.user_id,
            state=conversation.state.value,
            payload=export_conversation(conversation),
            last_activity=conversation.last_activity,
        )
