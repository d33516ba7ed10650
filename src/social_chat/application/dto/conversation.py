from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from social_chat.domain.entities.user import User


@dataclass(frozen=True, slots=True)
class ChatSummary:
    peer: User
    last_message: str
    last_message_at: datetime
    unread: int
