from __future__ import annotations

from fastapi import APIRouter

from social_chat.api.deps import CodecDep, CurrentPrincipal, UoWDep
from social_chat.api.v1.schemas.chat import ChatSummaryResponse
from social_chat.services import conversation_service

router = APIRouter(prefix="/api/v1/chats", tags=["chats"])


@router.get("", response_model=list[ChatSummaryResponse])
async def list_chats(
    principal: CurrentPrincipal,
    uow: UoWDep,
    codec: CodecDep,
) -> list[ChatSummaryResponse]:
    summaries = await conversation_service.list_chats(principal, codec, uow)
    return [
        ChatSummaryResponse(
            user_id=s.peer.username,
            name=s.peer.display_name,
            avatar=s.peer.avatar_url,
            last_message=s.last_message,
            last_message_at=s.last_message_at,
            unread=s.unread,
        )
        for s in summaries
    ]
