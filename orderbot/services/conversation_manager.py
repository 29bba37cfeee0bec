"""Conversation registry stored in memory."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import AsyncIterator, Callable, Iterable

from orderbot.models.conversation import DEFAULT_SESSION_TIMEOUT, Conversation, utcnow

logger = logging.getLogger(__name__)

ConversationKey = tuple[str, str]

DEFAULT_SWEEP_INTERVAL = 5 * 60.0


@dataclass(slots=True)
class _KeyLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


@dataclass(slots=True)
class RegistryStats:
    """Aggregate counts for operational visibility."""

    total: int = 0
    by_tenant: dict[str, int] = field(default_factory=dict)
    by_state: dict[str, int] = field(default_factory=dict)


class ConversationRegistry:
    """Tracks per-(tenant, user) conversations in RAM.

    The key map is guarded by one lock so lookups, inserts and evictions are
    atomic. Message processing for a single key is serialized through
    :meth:`session`, which holds a per-key ``asyncio.Lock`` while the handler
    runs; the sweep never evicts a key whose lock is held.
    """

    def __init__(
        self,
        timeout: timedelta = DEFAULT_SESSION_TIMEOUT,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.timeout = timeout
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._conversations: dict[ConversationKey, Conversation] = {}
        self._key_locks: dict[ConversationKey, _KeyLock] = {}
        self._lock = threading.Lock()
        self._sweeper: asyncio.Task[None] | None = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._conversations)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._conversations

    def get_or_create(self, tenant_id: str, user_id: str) -> Conversation:
        """Return the conversation for the key, creating an IDLE one if missing.

        An existing conversation idle beyond the timeout is reset in place.
        """
        key = (tenant_id, user_id)
        with self._lock:
            conversation = self._conversations.get(key)
            if conversation is None:
                conversation = Conversation(tenant_id=tenant_id, user_id=user_id, last_activity=self._clock())
                self._conversations[key] = conversation
                return conversation
            if conversation.is_expired(self.timeout, now=self._clock()):
                logger.info("Expired conversation reset for %s:%s", tenant_id, user_id)
                conversation.reset()
            return conversation

    def get(self, tenant_id: str, user_id: str) -> Conversation | None:
        """Return the live conversation for the key without creating one.

        Expired conversations are reported as missing.
        """
        with self._lock:
            conversation = self._conversations.get((tenant_id, user_id))
            if conversation is None or conversation.is_expired(self.timeout, now=self._clock()):
                return None
            return conversation

    def remove(self, tenant_id: str, user_id: str) -> bool:
        key = (tenant_id, user_id)
        with self._lock:
            removed = self._conversations.pop(key, None) is not None
        if removed:
            logger.info("Conversation removed for %s:%s", tenant_id, user_id)
        return removed

    def restore(self, conversations: Iterable[Conversation]) -> int:
        """Insert previously exported conversations, replacing any live entry."""
        count = 0
        with self._lock:
            for conversation in conversations:
                self._conversations[conversation.key] = conversation
                count += 1
        return count

    def conversations(self) -> list[Conversation]:
        with self._lock:
            return list(self._conversations.values())

    def is_busy(self, tenant_id: str, user_id: str) -> bool:
        """Return True while a message for the key is queued or being handled."""
        with self._lock:
            entry = self._key_locks.get((tenant_id, user_id))
            return entry is not None and entry.users > 0

    @contextlib.asynccontextmanager
    async def _locked(self, key: ConversationKey) -> AsyncIterator[None]:
        with self._lock:
            entry = self._key_locks.get(key)
            if entry is None:
                entry = self._key_locks[key] = _KeyLock()
            entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            with self._lock:
                entry.users -= 1
                if entry.users == 0 and self._key_locks.get(key) is entry:
                    del self._key_locks[key]

    @contextlib.asynccontextmanager
    async def session(self, tenant_id: str, user_id: str) -> AsyncIterator[Conversation]:
        """Hold the key's lock and yield its conversation for one message."""
        async with self._locked((tenant_id, user_id)):
            yield self.get_or_create(tenant_id, user_id)

    @contextlib.asynccontextmanager
    async def existing_session(self, tenant_id: str, user_id: str) -> AsyncIterator[Conversation | None]:
        """Like :meth:`session` but yields None instead of creating a conversation."""
        async with self._locked((tenant_id, user_id)):
            yield self.get(tenant_id, user_id)

    def sweep(self, timeout: timedelta | None = None, now: datetime | None = None) -> int:
        """Evict every conversation idle beyond ``timeout``; return the eviction count.

        Keys with a message queued or in flight are skipped.
        """
        limit = self.timeout if timeout is None else timeout
        current = now or self._clock()
        evicted: list[ConversationKey] = []
        with self._lock:
            for key, conversation in list(self._conversations.items()):
                if key in self._key_locks:
                    continue
                if conversation.is_expired(limit, now=current):
                    del self._conversations[key]
                    evicted.append(key)

        for tenant_id, user_id in evicted:
            logger.info("Expired conversation evicted: %s:%s", tenant_id, user_id)
        return len(evicted)

    def stats(self) -> RegistryStats:
        with self._lock:
            conversations = list(self._conversations.values())
        by_tenant = Counter(conversation.tenant_id for conversation in conversations)
        by_state = Counter(conversation.state.value for conversation in conversations)
        return RegistryStats(total=len(conversations), by_tenant=dict(by_tenant), by_state=dict(by_state))

    @property
    def is_sweeping(self) -> bool:
        return self._sweeper is not None and not self._sweeper.done()

    async def start(self) -> None:
        """Start the periodic sweep task on the running loop."""
        if self.is_sweeping:
            return
        self._sweeper = asyncio.create_task(self._sweep_loop(), name="conversation-sweeper")
        logger.info("Conversation sweeper started (interval=%ss)", self.sweep_interval)

    async def stop(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._sweeper
        self._sweeper = None
        logger.info("Conversation sweeper stopped")

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            try:
                self.sweep()
            except Exception:
                logger.exception("Conversation sweep failed")
