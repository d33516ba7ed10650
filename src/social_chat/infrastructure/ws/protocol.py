"""WebSocket message envelope and event payload models."""
from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class InboundEvent(StrEnum):
    JOIN = "join"
    SEND_MESSAGE = "sendMessage"
    TYPING = "typing"
    STOP_TYPING = "stopTyping"
    PING = "ping"


class OutboundEvent(StrEnum):
    USER_ONLINE_STATUS = "userOnlineStatus"
    UNREAD_UPDATED = "unreadUpdated"
    MESSAGE_RECEIVED = "messageReceived"
    TYPING = "typing"
    STOP_TYPING = "stopTyping"
    ERROR = "error"
    PONG = "pong"


class WsInbound(BaseModel):
    """Client → Server."""

    type: str
    data: dict[str, Any] = {}


class WsOutbound(BaseModel):
    """Server → Client."""

    type: str
    data: dict[str, Any] = {}


class PairPayload(BaseModel):
    """Identifies the acting user and the conversation peer by username."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    self_id: str = Field(min_length=1)
    peer_id: str = Field(min_length=1)

    @model_validator(mode="after")
    def _distinct_users(self) -> PairPayload:
        if self.self_id == self.peer_id:
            raise ValueError("selfId and peerId must differ")
        return self


class ChatMessagePayload(BaseModel):
    """Client message body; unknown fields are echoed back to the room."""

    model_config = ConfigDict(extra="allow")

    text: str
    time: Any = None


class SendMessagePayload(PairPayload):
    message: ChatMessagePayload
