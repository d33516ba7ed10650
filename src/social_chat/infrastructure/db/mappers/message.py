from __future__ import annotations

from social_chat.domain.entities.message import Message
from social_chat.infrastructure.db.models.message import MessageModel


def model_to_entity(model: MessageModel) -> Message:
    return Message(
        id=model.id,
        conversation_id=model.conversation_id,
        sender_id=model.sender_id,
        content=model.content,
        read_by=frozenset(model.read_by or ()),
        created_at=model.created_at,
    )


def entity_to_model(entity: Message) -> MessageModel:
    return MessageModel(
        id=entity.id,
        conversation_id=entity.conversation_id,
        sender_id=entity.sender_id,
        content=entity.content,
        read_by=sorted(entity.read_by, key=str),
        created_at=entity.created_at,
    )
