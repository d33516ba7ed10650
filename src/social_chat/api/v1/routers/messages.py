from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Query

from social_chat.api.deps import CodecDep, CurrentPrincipal, PresenceDep, UoWDep
from social_chat.api.v1.schemas.message import (
    ChatHeader,
    MessageResponse,
    MessagesPageResponse,
)
from social_chat.config import settings
from social_chat.services import message_service

router = APIRouter(prefix="/api/v1/chats", tags=["messages"])


@router.get("/{username}/messages", response_model=MessagesPageResponse)
async def list_messages(
    username: str,
    principal: CurrentPrincipal,
    uow: UoWDep,
    codec: CodecDep,
    presence: PresenceDep,
    before: datetime | None = Query(None),
    limit: int = Query(settings.HISTORY_DEFAULT_LIMIT, ge=1, le=settings.HISTORY_MAX_LIMIT),
) -> MessagesPageResponse:
    page = await message_service.list_history(
        principal, username, before, limit, codec, uow,
    )
    peer = page.peer
    return MessagesPageResponse(
        messages=[MessageResponse.model_validate(m, from_attributes=True) for m in page.messages],
        header=ChatHeader(
            user_id=peer.username,
            name=peer.display_name,
            avatar=peer.avatar_url,
            online=await presence.is_online(peer.username),
        ),
        has_more=page.has_more,
    )
