from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from social_chat.api.middleware.correlation_id import CorrelationIdMiddleware
from social_chat.api.v1.routers import chats, health, messages, ws
from social_chat.application.exceptions import (
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from social_chat.application.ports.presence import PresenceTracker
from social_chat.application.uow import UoWFactory
from social_chat.config import settings
from social_chat.infrastructure.crypto.aes_codec import AesCbcCodec
from social_chat.infrastructure.db.uow import uow_scope
from social_chat.infrastructure.presence.memory import InMemoryPresence
from social_chat.infrastructure.presence.redis_presence import RedisPresence
from social_chat.infrastructure.ws.gateway import ChatGateway
from social_chat.infrastructure.ws.manager import RoomManager

logger = logging.getLogger(__name__)


def _build_presence(app: FastAPI) -> PresenceTracker:
    if settings.PRESENCE_BACKEND == "redis":
        app.state.redis = aioredis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
        )
        logger.info("Redis presence backend enabled")
        return RedisPresence(app.state.redis, settings.PRESENCE_KEY_PREFIX)
    return InMemoryPresence()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    app.state.redis = None
    presence = _build_presence(app)
    app.state.gateway = ChatGateway(
        RoomManager(),
        presence,
        app.state.codec,
        app.state.uow_factory,
    )
    logger.info("Chat gateway started")

    yield

    await app.state.gateway.shutdown()
    if app.state.redis is not None:
        await app.state.redis.aclose()
        logger.info("Redis connection pool closed")
    logger.info("Chat gateway stopped")


def create_app(*, uow_factory: UoWFactory = uow_scope) -> FastAPI:
    app = FastAPI(
        title="Social Chat Service",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.uow_factory = uow_factory
    app.state.codec = AesCbcCodec.from_secret(settings.CHAT_ENCRYPTION_KEY)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(chats.router)
    app.include_router(messages.router)
    app.include_router(ws.router)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def _not_found(_req: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": exc.detail})

    @app.exception_handler(ForbiddenError)
    async def _forbidden(_req: Request, exc: ForbiddenError) -> JSONResponse:
        return JSONResponse(status_code=403, content={"detail": exc.detail})

    @app.exception_handler(ValidationError)
    async def _validation(_req: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": exc.detail})
