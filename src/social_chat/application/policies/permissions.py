from __future__ import annotations

from social_chat.application.exceptions import ForbiddenError
from social_chat.application.repositories.user import ConnectionReader
from social_chat.domain.entities.user import User


async def assert_can_chat(
    me: User,
    other: User,
    connections: ConnectionReader,
) -> None:
    """Raise unless neither side blocked the other and they are connected."""
    if me.has_blocked(other) or other.has_blocked(me):
        raise ForbiddenError("You are blocked or have blocked this user.")

    if not await connections.is_accepted(me.id, other.id):
        raise ForbiddenError("You are not connected with this user. Chat is blocked.")
