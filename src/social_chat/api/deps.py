"""FastAPI dependency injection helpers."""
from __future__ import annotations

from typing import Annotated, AsyncIterator

from fastapi import Depends, HTTPException, Request, WebSocket, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from social_chat.application.dto.principal import Principal
from social_chat.application.ports.auth import TokenVerifier
from social_chat.application.ports.codec import MessageCodec
from social_chat.application.ports.presence import PresenceTracker
from social_chat.application.uow import UnitOfWork
from social_chat.config import settings
from social_chat.infrastructure.auth.hs256_verifier import HS256Verifier
from social_chat.infrastructure.ws.gateway import ChatGateway

_bearer_scheme = HTTPBearer()


async def get_uow(request: Request) -> AsyncIterator[UnitOfWork]:
    async with request.app.state.uow_factory() as uow:
        yield uow


UoWDep = Annotated[UnitOfWork, Depends(get_uow)]


_verifier: TokenVerifier | None = None


def get_verifier() -> TokenVerifier:
    global _verifier  # noqa: PLW0603
    if _verifier is None:
        _verifier = HS256Verifier(settings.JWT_SECRET, settings.JWT_ALGORITHM)
    return _verifier


async def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(_bearer_scheme)],
) -> Principal:
    verifier = get_verifier()
    try:
        return await verifier.verify(credentials.credentials)
    except Exception as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]


def get_codec(request: Request) -> MessageCodec:
    return request.app.state.codec


CodecDep = Annotated[MessageCodec, Depends(get_codec)]


def get_presence(request: Request) -> PresenceTracker:
    return request.app.state.gateway.presence


PresenceDep = Annotated[PresenceTracker, Depends(get_presence)]


def get_gateway(websocket: WebSocket) -> ChatGateway:
    return websocket.app.state.gateway
