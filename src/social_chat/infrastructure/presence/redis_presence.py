"""Presence shared between gateway processes through Redis sets."""
from __future__ import annotations

import logging

import redis.asyncio as aioredis

logger = logging.getLogger(__name__)


class RedisPresence:
    """Implements application.ports.presence.PresenceTracker.

    Each user maps to a Redis set of live connection ids. Redis drops a set
    once its last member is removed, so key existence means "online".
    """

    def __init__(self, redis: aioredis.Redis, key_prefix: str = "chat:presence") -> None:
        self._redis = redis
        self._prefix = key_prefix
        self._local: dict[str, str] = {}  # connection_id -> username

    def _key(self, username: str) -> str:
        return f"{self._prefix}:{username}"

    async def mark_online(self, username: str, connection_id: str) -> None:
        await self._redis.sadd(self._key(username), connection_id)
        self._local[connection_id] = username

    async def mark_offline(self, username: str, connection_id: str) -> bool:
        self._local.pop(connection_id, None)
        await self._redis.srem(self._key(username), connection_id)
        remaining = await self._redis.scard(self._key(username))
        return remaining > 0

    async def is_online(self, username: str) -> bool:
        return bool(await self._redis.exists(self._key(username)))

    async def clear(self) -> None:
        """Remove only the connections registered by this process."""
        for connection_id, username in list(self._local.items()):
            await self._redis.srem(self._key(username), connection_id)
        logger.info("Released %d presence entries", len(self._local))
        self._local.clear()
