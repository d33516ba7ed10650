from __future__ import annotations

from dataclasses import replace
from uuid import UUID

from sqlalchemy import func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from social_chat.domain.entities.conversation import Conversation, append_time, ordered_pair
from social_chat.domain.entities.message import Message
from social_chat.infrastructure.db.mappers import conversation as mapper
from social_chat.infrastructure.db.mappers import message as message_mapper
from social_chat.infrastructure.db.models.conversation import ConversationModel
from social_chat.infrastructure.db.models.message import MessageModel


class ConversationReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find_between(self, first_id: UUID, second_id: UUID) -> Conversation | None:
        low, high = ordered_pair(first_id, second_id)
        stmt = select(ConversationModel).where(
            ConversationModel.participant_low_id == low,
            ConversationModel.participant_high_id == high,
        )
        result = await self._session.execute(stmt)
        model = result.unique().scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def list_for_user(self, user_id: UUID) -> list[Conversation]:
        stmt = (
            select(ConversationModel)
            .where(
                or_(
                    ConversationModel.participant_low_id == user_id,
                    ConversationModel.participant_high_id == user_id,
                )
            )
            .order_by(ConversationModel.updated_at.desc(), ConversationModel.id)
        )
        result = await self._session.execute(stmt)
        return [mapper.model_to_entity(m) for m in result.unique().scalars().all()]


class ConversationWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, first_id: UUID, second_id: UUID) -> Conversation:
        """Insert the pair's conversation; a concurrent insert wins silently."""
        low, high = ordered_pair(first_id, second_id)
        stmt = (
            pg_insert(ConversationModel)
            .values(participant_low_id=low, participant_high_id=high)
            .on_conflict_do_nothing(constraint="uq_conversation_pair")
        )
        await self._session.execute(stmt)
        conversation = await ConversationReaderRepo(self._session).find_between(low, high)
        assert conversation is not None
        return conversation

    async def append_message(self, conversation_id: UUID, message: Message) -> Message:
        # row lock serialises appends to the same conversation across processes
        await self._session.execute(
            select(ConversationModel.id)
            .where(ConversationModel.id == conversation_id)
            .with_for_update()
        )
        latest = await self._session.scalar(
            select(func.max(MessageModel.created_at))
            .where(MessageModel.conversation_id == conversation_id)
        )
        message = replace(message, created_at=append_time(message.created_at, latest))
        model = message_mapper.entity_to_model(message)
        self._session.add(model)
        await self._session.flush()
        await self._session.execute(
            update(ConversationModel)
            .where(ConversationModel.id == conversation_id)
            .values(last_message_id=model.id, updated_at=message.created_at)
        )
        return message_mapper.model_to_entity(model)
