"""Single-process presence tracking."""
from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class InMemoryPresence:
    """Implements application.ports.presence.PresenceTracker.

    Only valid within one process: every instance starts with all users
    offline.
    """

    def __init__(self) -> None:
        self._connections: dict[str, set[str]] = {}

    async def mark_online(self, username: str, connection_id: str) -> None:
        self._connections.setdefault(username, set()).add(connection_id)

    async def mark_offline(self, username: str, connection_id: str) -> bool:
        conns = self._connections.get(username)
        if not conns:
            return False
        conns.discard(connection_id)
        if conns:
            return True
        del self._connections[username]
        return False

    async def is_online(self, username: str) -> bool:
        return username in self._connections

    async def clear(self) -> None:
        logger.debug("Clearing presence for %d users", len(self._connections))
        self._connections.clear()
