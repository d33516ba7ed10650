from __future__ import annotations

from typing import Protocol
from uuid import UUID

from social_chat.domain.entities.conversation import Conversation
from social_chat.domain.entities.message import Message


class ConversationReader(Protocol):
    async def find_between(self, first_id: UUID, second_id: UUID) -> Conversation | None: ...

    async def list_for_user(self, user_id: UUID) -> list[Conversation]:
        """Conversations the user takes part in, most recently updated first."""
        ...


class ConversationWriter(Protocol):
    async def create(self, first_id: UUID, second_id: UUID) -> Conversation:
        """Create the conversation for a pair, or return the existing one."""
        ...

    async def append_message(self, conversation_id: UUID, message: Message) -> Message:
        """Append a message and make it the cached last message in one step."""
        ...
