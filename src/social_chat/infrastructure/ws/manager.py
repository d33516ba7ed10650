"""In-process WebSocket connection and room registry."""
from __future__ import annotations

import logging
import uuid
from typing import Any, Iterable

from fastapi import WebSocket

from social_chat.infrastructure.ws.protocol import WsOutbound

logger = logging.getLogger(__name__)


class RoomManager:
    """Tracks live connections and which rooms each one is subscribed to.

    Delivery is at-most-once: a failed send drops that connection and is
    not retried.
    """

    def __init__(self) -> None:
        self._connections: dict[str, WebSocket] = {}
        self._rooms: dict[str, set[str]] = {}
        self._memberships: dict[str, set[str]] = {}

    async def connect(self, ws: WebSocket) -> str:
        await ws.accept()
        connection_id = uuid.uuid4().hex
        self._connections[connection_id] = ws
        logger.debug("WS connected: %s (total=%d)", connection_id, len(self._connections))
        return connection_id

    def disconnect(self, connection_id: str) -> None:
        if self._connections.pop(connection_id, None) is None:
            return
        for room_id in self._memberships.pop(connection_id, set()):
            members = self._rooms.get(room_id)
            if members is None:
                continue
            members.discard(connection_id)
            if not members:
                del self._rooms[room_id]
        logger.debug("WS disconnected: %s", connection_id)

    def join(self, connection_id: str, room_id: str) -> None:
        if connection_id not in self._connections:
            return
        self._rooms.setdefault(room_id, set()).add(connection_id)
        self._memberships.setdefault(connection_id, set()).add(room_id)

    def room_members(self, room_id: str) -> set[str]:
        return set(self._rooms.get(room_id, ()))

    async def broadcast_to_room(
        self,
        room_id: str,
        event_type: str,
        data: dict[str, Any],
        *,
        exclude: str | None = None,
    ) -> None:
        """Send an event to every connection in a room, optionally skipping one."""
        targets = [cid for cid in self._rooms.get(room_id, ()) if cid != exclude]
        await self._deliver(targets, event_type, data)

    async def broadcast(self, event_type: str, data: dict[str, Any]) -> None:
        """Send an event to every live connection."""
        await self._deliver(list(self._connections), event_type, data)

    async def send_to_connection(
        self,
        connection_id: str,
        event_type: str,
        data: dict[str, Any],
    ) -> None:
        await self._deliver([connection_id], event_type, data)

    async def _deliver(
        self,
        connection_ids: Iterable[str],
        event_type: str,
        data: dict[str, Any],
    ) -> None:
        raw = WsOutbound(type=str(event_type), data=data).model_dump_json()
        dead: list[str] = []
        for cid in connection_ids:
            ws = self._connections.get(cid)
            if ws is None:
                continue
            try:
                await ws.send_text(raw)
            except Exception:
                logger.debug("Dropping dead connection %s", cid, exc_info=True)
                dead.append(cid)
        for cid in dead:
            self.disconnect(cid)
