from __future__ import annotations

from datetime import datetime
from typing import Iterable
from uuid import UUID

from sqlalchemy import any_, func, not_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from social_chat.domain.entities.message import Message
from social_chat.infrastructure.db.mappers import message as mapper
from social_chat.infrastructure.db.models.message import MessageModel


def _not_read_by(reader_id: UUID):
    return not_(any_(MessageModel.read_by) == reader_id)


class MessageReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_before(
        self,
        conversation_id: UUID,
        *,
        before: datetime | None = None,
        limit: int = 20,
    ) -> list[Message]:
        stmt = (
            select(MessageModel)
            .where(MessageModel.conversation_id == conversation_id)
            .order_by(MessageModel.created_at.desc(), MessageModel.seq.desc())
            .limit(limit)
        )
        if before is not None:
            stmt = stmt.where(MessageModel.created_at < before)
        result = await self._session.execute(stmt)
        newest_first = [mapper.model_to_entity(m) for m in result.scalars().all()]
        return newest_first[::-1]

    async def count_unread(
        self, conversation_ids: Iterable[UUID], reader_id: UUID
    ) -> dict[UUID, int]:
        ids = list(conversation_ids)
        if not ids:
            return {}
        stmt = (
            select(MessageModel.conversation_id, func.count())
            .where(MessageModel.conversation_id.in_(ids), _not_read_by(reader_id))
            .group_by(MessageModel.conversation_id)
        )
        result = await self._session.execute(stmt)
        return {cid: count for cid, count in result.all()}


class MessageWriterRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def mark_all_read(self, conversation_id: UUID, reader_id: UUID) -> int:
        stmt = (
            update(MessageModel)
            .where(MessageModel.conversation_id == conversation_id, _not_read_by(reader_id))
            .values(
                read_by=func.array_append(
                    MessageModel.read_by, reader_id, type_=MessageModel.read_by.type,
                )
            )
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount or 0
