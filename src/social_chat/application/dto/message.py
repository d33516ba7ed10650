from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from social_chat.domain.entities.user import User


@dataclass(frozen=True, slots=True)
class MessageView:
    """A stored message with its content decrypted for display."""

    id: UUID
    sender: str
    text: str
    created_at: datetime


@dataclass(frozen=True, slots=True)
class HistoryPage:
    peer: User
    messages: list[MessageView]
    has_more: bool
