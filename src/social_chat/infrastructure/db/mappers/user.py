from __future__ import annotations

from social_chat.domain.entities.user import User
from social_chat.infrastructure.db.models.user import UserModel


def model_to_entity(model: UserModel) -> User:
    return User(
        id=model.id,
        username=model.username,
        first_name=model.first_name,
        last_name=model.last_name,
        avatar=model.avatar,
        blocked_user_ids=frozenset(model.blocked_user_ids or ()),
    )
