from __future__ import annotations

from typing import Iterable, Protocol
from uuid import UUID

from social_chat.domain.entities.user import User


class UserReader(Protocol):
    async def get_by_username(self, username: str) -> User | None: ...

    async def get_by_ids(self, user_ids: Iterable[UUID]) -> dict[UUID, User]: ...


class ConnectionReader(Protocol):
    async def is_accepted(self, first_id: UUID, second_id: UUID) -> bool:
        """True if an accepted connection exists in either direction."""
        ...
