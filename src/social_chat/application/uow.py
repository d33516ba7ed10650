from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from typing import Callable, Protocol

from social_chat.application.repositories.conversation import (
    ConversationReader,
    ConversationWriter,
)
from social_chat.application.repositories.message import MessageReader, MessageWriter
from social_chat.application.repositories.user import ConnectionReader, UserReader


class UnitOfWork(Protocol):
    users: UserReader
    connections: ConnectionReader
    conversations: ConversationReader
    conversations_w: ConversationWriter
    messages: MessageReader
    messages_w: MessageWriter

    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...
    async def flush(self) -> None: ...


UoWFactory = Callable[[], AbstractAsyncContextManager[UnitOfWork]]
