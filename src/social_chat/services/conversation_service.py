from __future__ import annotations

from social_chat.application.dto.conversation import ChatSummary
from social_chat.application.dto.principal import Principal
from social_chat.application.ports.codec import MessageCodec
from social_chat.application.uow import UnitOfWork
from social_chat.services.message_service import render_content, resolve_user


async def list_chats(
    principal: Principal,
    codec: MessageCodec,
    uow: UnitOfWork,
) -> list[ChatSummary]:
    """Summaries of the caller's conversations, most recent activity first."""
    me = await resolve_user(principal.username, uow)
    conversations = await uow.conversations.list_for_user(me.id)
    if not conversations:
        return []

    peers = await uow.users.get_by_ids(c.other_participant(me.id) for c in conversations)
    unread = await uow.messages.count_unread([c.id for c in conversations], me.id)

    summaries: list[ChatSummary] = []
    for conversation in conversations:
        peer = peers.get(conversation.other_participant(me.id))
        if peer is None:
            # peer account was deleted
            continue
        last = conversation.last_message
        summaries.append(
            ChatSummary(
                peer=peer,
                last_message=render_content(codec, last.content, last.id) if last else "",
                last_message_at=last.created_at if last else conversation.updated_at,
                unread=unread.get(conversation.id, 0),
            )
        )
    return summaries
