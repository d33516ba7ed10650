from __future__ import annotations

import logging
import uuid
from datetime import datetime
from uuid import UUID

from social_chat.application.dto.message import HistoryPage, MessageView
from social_chat.application.dto.principal import Principal
from social_chat.application.exceptions import CodecError, UnknownUserError, ValidationError
from social_chat.application.policies.permissions import assert_can_chat
from social_chat.application.ports.clock import Clock, SystemClock
from social_chat.application.ports.codec import MessageCodec
from social_chat.application.uow import UnitOfWork
from social_chat.domain.entities.message import Message
from social_chat.domain.entities.user import User

logger = logging.getLogger(__name__)

UNDECRYPTABLE_PLACEHOLDER = "[message could not be decrypted]"

_system_clock = SystemClock()


def ensure_distinct(first_username: str, second_username: str) -> None:
    if first_username == second_username:
        raise ValidationError("A conversation needs two different users")


async def resolve_user(username: str, uow: UnitOfWork) -> User:
    user = await uow.users.get_by_username(username)
    if user is None:
        raise UnknownUserError(username)
    return user


def render_content(codec: MessageCodec, envelope: str | None, message_id: UUID) -> str:
    """Decrypt one stored message, substituting a placeholder on failure."""
    try:
        return codec.decrypt(envelope)
    except CodecError:
        logger.warning("Could not decrypt message %s", message_id)
        return UNDECRYPTABLE_PLACEHOLDER


async def send_message(
    sender_username: str,
    peer_username: str,
    text: str,
    codec: MessageCodec,
    uow: UnitOfWork,
    *,
    clock: Clock = _system_clock,
) -> Message:
    """Persist a message from sender to peer, creating the conversation lazily.

    Content is stored encrypted. The sender counts as having read their own
    message. Callers must serialise sends for the same pair.
    """
    ensure_distinct(sender_username, peer_username)
    sender = await resolve_user(sender_username, uow)
    peer = await resolve_user(peer_username, uow)

    conversation = await uow.conversations.find_between(sender.id, peer.id)
    if conversation is None:
        conversation = await uow.conversations_w.create(sender.id, peer.id)
        logger.info("Created conversation %s", conversation.id)

    msg = Message(
        id=uuid.uuid4(),
        conversation_id=conversation.id,
        sender_id=sender.id,
        content=codec.encrypt(text),
        read_by=frozenset({sender.id}),
        created_at=clock.now(),
    )
    msg = await uow.conversations_w.append_message(conversation.id, msg)
    await uow.commit()
    return msg


async def mark_conversation_read(
    reader_username: str,
    peer_username: str,
    uow: UnitOfWork,
) -> int:
    """Mark every message between the pair as read by reader.

    Returns the number of messages that changed; 0 when there is nothing
    to update or no conversation exists yet.
    """
    ensure_distinct(reader_username, peer_username)
    reader = await resolve_user(reader_username, uow)
    peer = await resolve_user(peer_username, uow)

    conversation = await uow.conversations.find_between(reader.id, peer.id)
    if conversation is None:
        return 0

    changed = await uow.messages_w.mark_all_read(conversation.id, reader.id)
    if changed:
        await uow.commit()
    return changed


async def list_history(
    principal: Principal,
    peer_username: str,
    before: datetime | None,
    limit: int,
    codec: MessageCodec,
    uow: UnitOfWork,
) -> HistoryPage:
    ensure_distinct(principal.username, peer_username)
    me = await resolve_user(principal.username, uow)
    peer = await resolve_user(peer_username, uow)
    await assert_can_chat(me, peer, uow.connections)

    conversation = await uow.conversations.find_between(me.id, peer.id)
    if conversation is None:
        return HistoryPage(peer=peer, messages=[], has_more=False)

    messages = await uow.messages.list_before(conversation.id, before=before, limit=limit)
    usernames = {me.id: me.username, peer.id: peer.username}
    views = [
        MessageView(
            id=m.id,
            sender=usernames.get(m.sender_id, ""),
            text=render_content(codec, m.content, m.id),
            created_at=m.created_at,
        )
        for m in messages
    ]
    return HistoryPage(peer=peer, messages=views, has_more=len(messages) == limit)
