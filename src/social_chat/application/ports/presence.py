from __future__ import annotations

from typing import Protocol


class PresenceTracker(Protocol):
    """Which users currently hold at least one live connection."""

    async def mark_online(self, username: str, connection_id: str) -> None: ...

    async def mark_offline(self, username: str, connection_id: str) -> bool:
        """Drop one connection. Return True if the user is still online elsewhere."""
        ...

    async def is_online(self, username: str) -> bool: ...

    async def clear(self) -> None: ...
