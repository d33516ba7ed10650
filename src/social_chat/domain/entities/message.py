from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True, slots=True)
class Message:
    id: UUID
    conversation_id: UUID
    sender_id: UUID
    content: str  # encrypted envelope
    read_by: frozenset[UUID]
    created_at: datetime

    def is_read_by(self, user_id: UUID) -> bool:
        return user_id in self.read_by
