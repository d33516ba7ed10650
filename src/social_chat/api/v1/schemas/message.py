from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class ChatHeader(BaseModel):
    user_id: str
    name: str
    avatar: str
    online: bool


class MessageResponse(BaseModel):
    id: UUID
    sender: str
    text: str
    created_at: datetime

    model_config = {"from_attributes": True}


class MessagesPageResponse(BaseModel):
    messages: list[MessageResponse]
    header: ChatHeader
    has_more: bool
