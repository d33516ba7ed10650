from __future__ import annotations

from datetime import datetime
from typing import Iterable, Protocol
from uuid import UUID

from social_chat.domain.entities.message import Message


class MessageReader(Protocol):
    async def list_before(
        self,
        conversation_id: UUID,
        *,
        before: datetime | None = None,
        limit: int = 20,
    ) -> list[Message]:
        """The newest `limit` messages older than `before`, oldest first."""
        ...

    async def count_unread(
        self, conversation_ids: Iterable[UUID], reader_id: UUID
    ) -> dict[UUID, int]: ...


class MessageWriter(Protocol):
    async def mark_all_read(self, conversation_id: UUID, reader_id: UUID) -> int:
        """Add reader to read_by of every message missing it. Return rows changed."""
        ...
