"""Redis-backed storage for planning conversations."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import uuid4

from redis.asyncio import Redis

from juno.core.config import settings
from juno.domains.planner.schemas import ConversationState
from juno.domains.planner.state import ConversationBusyError

logger = logging.getLogger(__name__)


class ConversationStore:
    """Keeps conversation state as JSON with a sliding TTL.

    A separate ``pending`` key marks a conversation whose message is being
    processed; only one message per conversation runs at a time.
    """

    KEY_PREFIX = "planner:conversation"
    PENDING_PREFIX = "planner:pending"

    def __init__(
        self,
        redis: Redis,
        ttl: int | None = None,
        pending_ttl: int | None = None,
    ) -> None:
        self.redis = redis
        self.ttl = ttl or settings.CONVERSATION_TTL_SECONDS
        self.pending_ttl = pending_ttl or settings.CONVERSATION_LOCK_SECONDS

    def _key(self, conversation_id: str) -> str:
        return f"{self.KEY_PREFIX}:{conversation_id}"

    def _pending_key(self, conversation_id: str) -> str:
        return f"{self.PENDING_PREFIX}:{conversation_id}"

    async def get(self, conversation_id: str) -> ConversationState | None:
        data = await self.redis.get(self._key(conversation_id))
        if data is None:
            return None
        return ConversationState.model_validate_json(data)

    async def save(self, state: ConversationState) -> None:
        await self.redis.set(self._key(state.id), state.model_dump_json(), ex=self.ttl)

    async def delete(self, conversation_id: str) -> None:
        await self.redis.delete(self._key(conversation_id), self._pending_key(conversation_id))

    async def clear_pending(self, conversation_id: str) -> None:
        """Drop the pending marker regardless of who holds it."""
        await self.redis.delete(self._pending_key(conversation_id))

    @asynccontextmanager
    async def pending(self, conversation_id: str) -> AsyncIterator[None]:
        """Hold the conversation for the duration of one message.

        Raises:
            ConversationBusyError: If another message is still in flight
        """
        token = uuid4().hex
        key = self._pending_key(conversation_id)
        acquired = await self.redis.set(key, token, nx=True, ex=self.pending_ttl)
        if not acquired:
            raise ConversationBusyError("A previous message is still being processed")
        try:
            yield
        finally:
            # A reset may have cleared the marker and a newer message taken it
            if await self.redis.get(key) == token:
                await self.redis.delete(key)
            else:
                logger.info(f"Pending marker for conversation {conversation_id} was replaced")
