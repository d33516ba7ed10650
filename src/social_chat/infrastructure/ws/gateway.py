"""Realtime chat gateway: per-connection state machine over rooms and presence.

A connection starts UNBOUND and may only ``join``. The first join binds the
connection to a username and moves it to JOINED, where it can join further
rooms, send messages and typing indicators. Disconnect moves it to CLOSED,
after which events are ignored.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import pydantic
from fastapi import WebSocket

from social_chat.application.exceptions import AppError, UnknownUserError
from social_chat.application.ports.clock import Clock, SystemClock
from social_chat.application.ports.codec import MessageCodec
from social_chat.application.ports.presence import PresenceTracker
from social_chat.application.uow import UoWFactory
from social_chat.domain.value_objects.enums import SessionState
from social_chat.domain.value_objects.room import derive_room_id
from social_chat.infrastructure.ws.locks import KeyedLock
from social_chat.infrastructure.ws.manager import RoomManager
from social_chat.infrastructure.ws.protocol import (
    InboundEvent,
    OutboundEvent,
    PairPayload,
    SendMessagePayload,
    WsInbound,
)
from social_chat.services import message_service

logger = logging.getLogger(__name__)


@dataclass
class ClientSession:
    connection_id: str
    state: SessionState = SessionState.UNBOUND
    username: str | None = None


_Handler = Callable[[ClientSession, Any], Awaitable[None]]


class ChatGateway:
    def __init__(
        self,
        rooms: RoomManager,
        presence: PresenceTracker,
        codec: MessageCodec,
        uow_factory: UoWFactory,
        *,
        clock: Clock | None = None,
    ) -> None:
        self._rooms = rooms
        self._presence = presence
        self._codec = codec
        self._uow_factory = uow_factory
        self._clock = clock or SystemClock()
        self._locks = KeyedLock()
        self._handlers: dict[str, tuple[type[PairPayload], _Handler]] = {
            InboundEvent.JOIN.value: (PairPayload, self._on_join),
            InboundEvent.SEND_MESSAGE.value: (SendMessagePayload, self._on_send_message),
            InboundEvent.TYPING.value: (PairPayload, self._on_typing),
            InboundEvent.STOP_TYPING.value: (PairPayload, self._on_stop_typing),
        }

    @property
    def presence(self) -> PresenceTracker:
        return self._presence

    async def open(self, ws: WebSocket) -> ClientSession:
        connection_id = await self._rooms.connect(ws)
        return ClientSession(connection_id=connection_id)

    async def handle(self, session: ClientSession, msg: WsInbound) -> None:
        if session.state is SessionState.CLOSED:
            return

        if msg.type == InboundEvent.PING:
            await self._rooms.send_to_connection(session.connection_id, OutboundEvent.PONG, {})
            return

        entry = self._handlers.get(msg.type)
        if entry is None:
            await self._send_error(session, "unknown_type", msg.type)
            return
        payload_model, handler = entry

        try:
            payload = payload_model.model_validate(msg.data)
        except pydantic.ValidationError as exc:
            await self._send_error(session, "invalid_payload", str(exc))
            return

        if session.state is SessionState.UNBOUND and msg.type != InboundEvent.JOIN:
            await self._send_error(session, "not_joined", "Send join first")
            return
        if session.username is not None and payload.self_id != session.username:
            await self._send_error(session, "identity_mismatch", payload.self_id)
            return

        await handler(session, payload)

    async def close(self, session: ClientSession) -> None:
        if session.state is SessionState.CLOSED:
            return
        was_joined = session.state is SessionState.JOINED
        session.state = SessionState.CLOSED
        self._rooms.disconnect(session.connection_id)

        if not was_joined or session.username is None:
            return
        still_online = await self._presence.mark_offline(session.username, session.connection_id)
        if not still_online:
            logger.info("%s went offline", session.username)
            await self._rooms.broadcast(
                OutboundEvent.USER_ONLINE_STATUS,
                {"username": session.username, "online": False},
            )

    async def shutdown(self) -> None:
        await self._presence.clear()

    async def _on_join(self, session: ClientSession, payload: PairPayload) -> None:
        me, peer = payload.self_id, payload.peer_id
        try:
            async with self._uow_factory() as uow:
                await message_service.resolve_user(me, uow)
                await message_service.resolve_user(peer, uow)
        except UnknownUserError as exc:
            logger.info("Join with unknown user: %s", exc.username)
            await self._send_error(session, exc.code, exc.detail)
            return
        except Exception:
            logger.exception("User lookup failed on join for %s", me)
            await self._send_error(session, "join_failed", "Users could not be looked up")
            return

        if session.state is SessionState.UNBOUND:
            session.username = me
            session.state = SessionState.JOINED

        room_id = derive_room_id(me, peer)
        self._rooms.join(session.connection_id, room_id)
        await self._presence.mark_online(me, session.connection_id)
        logger.debug("%s joined room %s", me, room_id)

        await self._rooms.broadcast_to_room(
            room_id,
            OutboundEvent.USER_ONLINE_STATUS,
            {"username": me, "online": True},
        )
        await self._rooms.send_to_connection(
            session.connection_id,
            OutboundEvent.USER_ONLINE_STATUS,
            {"username": peer, "online": await self._presence.is_online(peer)},
        )

        try:
            async with self._locks.hold(room_id):
                async with self._uow_factory() as uow:
                    changed = await message_service.mark_conversation_read(me, peer, uow)
        except Exception:
            logger.exception("Marking messages read failed for %s", me)
            return

        if changed:
            logger.debug("%s read %d messages from %s", me, changed, peer)
            await self._rooms.broadcast_to_room(
                room_id, OutboundEvent.UNREAD_UPDATED, {"userId": peer},
            )

    async def _on_send_message(self, session: ClientSession, payload: SendMessagePayload) -> None:
        me, peer = payload.self_id, payload.peer_id
        room_id = derive_room_id(me, peer)

        try:
            async with self._locks.hold(room_id):
                async with self._uow_factory() as uow:
                    await message_service.send_message(
                        me, peer, payload.message.text, self._codec, uow, clock=self._clock,
                    )
        except AppError as exc:
            logger.info("sendMessage rejected for %s -> %s: %s", me, peer, exc.detail)
            await self._send_error(session, exc.code, exc.detail)
            return
        except Exception:
            logger.exception("sendMessage failed for %s -> %s", me, peer)
            await self._send_error(session, "send_failed", "Message could not be saved")
            return

        new_message = {**payload.message.model_dump(), "sender": me, "time": payload.message.time}
        await self._rooms.broadcast_to_room(
            room_id, OutboundEvent.MESSAGE_RECEIVED, {"newMessage": new_message},
        )

    async def _on_typing(self, session: ClientSession, payload: PairPayload) -> None:
        await self._relay_typing(session, payload, OutboundEvent.TYPING)

    async def _on_stop_typing(self, session: ClientSession, payload: PairPayload) -> None:
        await self._relay_typing(session, payload, OutboundEvent.STOP_TYPING)

    async def _relay_typing(
        self, session: ClientSession, payload: PairPayload, event: OutboundEvent,
    ) -> None:
        room_id = derive_room_id(payload.self_id, payload.peer_id)
        await self._rooms.broadcast_to_room(
            room_id, event, {"username": payload.self_id}, exclude=session.connection_id,
        )

    async def _send_error(self, session: ClientSession, code: str, detail: str) -> None:
        await self._rooms.send_to_connection(
            session.connection_id,
            OutboundEvent.ERROR,
            {"code": code, "detail": detail},
        )
