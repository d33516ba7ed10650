from __future__ import annotations

from typing import Iterable
from uuid import UUID

from sqlalchemy import and_, exists, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from social_chat.domain.entities.user import User
from social_chat.domain.value_objects.enums import ConnectionStatus
from social_chat.infrastructure.db.mappers import user as mapper
from social_chat.infrastructure.db.models.connection_request import ConnectionRequestModel
from social_chat.infrastructure.db.models.user import UserModel


class UserReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_username(self, username: str) -> User | None:
        stmt = select(UserModel).where(UserModel.username == username)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return mapper.model_to_entity(model) if model else None

    async def get_by_ids(self, user_ids: Iterable[UUID]) -> dict[UUID, User]:
        ids = list(set(user_ids))
        if not ids:
            return {}
        result = await self._session.execute(select(UserModel).where(UserModel.id.in_(ids)))
        return {m.id: mapper.model_to_entity(m) for m in result.scalars().all()}


class ConnectionReaderRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def is_accepted(self, first_id: UUID, second_id: UUID) -> bool:
        R = ConnectionRequestModel
        stmt = select(
            exists().where(
                R.status == ConnectionStatus.ACCEPTED,
                or_(
                    and_(R.from_user_id == first_id, R.to_user_id == second_id),
                    and_(R.from_user_id == second_id, R.to_user_id == first_id),
                ),
            )
        )
        result = await self._session.execute(stmt)
        return bool(result.scalar())
