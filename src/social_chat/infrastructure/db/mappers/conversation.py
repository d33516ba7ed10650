from __future__ import annotations

from social_chat.domain.entities.conversation import Conversation
from social_chat.infrastructure.db.mappers import message as message_mapper
from social_chat.infrastructure.db.models.conversation import ConversationModel


def model_to_entity(model: ConversationModel) -> Conversation:
    last = model.last_message
    return Conversation(
        id=model.id,
        participant_low_id=model.participant_low_id,
        participant_high_id=model.participant_high_id,
        last_message=message_mapper.model_to_entity(last) if last is not None else None,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )
