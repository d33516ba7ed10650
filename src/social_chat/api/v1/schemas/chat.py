from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class ChatSummaryResponse(BaseModel):
    user_id: str
    name: str
    avatar: str
    last_message: str
    last_message_at: datetime
    unread: int
