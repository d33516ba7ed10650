"""Seed development data: two connected users and a short encrypted conversation."""
from __future__ import annotations

import asyncio
import logging

from social_chat.config import settings
from social_chat.domain.value_objects.enums import ConnectionStatus
from social_chat.infrastructure.crypto.aes_codec import AesCbcCodec
from social_chat.infrastructure.db.base import Base
from social_chat.infrastructure.db.models import ConnectionRequestModel, UserModel
from social_chat.infrastructure.db.session import AsyncSessionLocal, engine
from social_chat.infrastructure.db.uow import uow_scope
from social_chat.logging_config import configure_logging
from social_chat.services import message_service

logger = logging.getLogger(__name__)

USERS = [
    ("alice", "Alice", "Liddell"),
    ("bob", "Bob", None),
]

MESSAGES = [
    ("alice", "bob", "hi"),
    ("bob", "alice", "hello"),
    ("alice", "bob", "free for a call later?"),
]


async def seed() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as session:
        users = {
            username: UserModel(username=username, first_name=first, last_name=last)
            for username, first, last in USERS
        }
        session.add_all(users.values())
        await session.flush()
        session.add(
            ConnectionRequestModel(
                from_user_id=users["alice"].id,
                to_user_id=users["bob"].id,
                status=ConnectionStatus.ACCEPTED,
            )
        )
        await session.commit()

    codec = AesCbcCodec.from_secret(settings.CHAT_ENCRYPTION_KEY)
    for sender, peer, text in MESSAGES:
        async with uow_scope() as uow:
            await message_service.send_message(sender, peer, text, codec, uow)

    logger.info("Seeded %d users and %d messages", len(USERS), len(MESSAGES))


def main() -> None:
    configure_logging(settings.LOG_LEVEL)
    asyncio.run(seed())


if __name__ == "__main__":
    main()
