from __future__ import annotations

import asyncio
import logging

import pydantic
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from social_chat.api.deps import get_gateway
from social_chat.config import settings
from social_chat.infrastructure.ws.gateway import ChatGateway, ClientSession
from social_chat.infrastructure.ws.protocol import OutboundEvent, WsInbound, WsOutbound
from social_chat.logging_config import correlation_id_ctx

logger = logging.getLogger(__name__)
router = APIRouter(tags=["websocket"])


@router.websocket("/ws/chat")
async def ws_chat(websocket: WebSocket) -> None:
    gateway = get_gateway(websocket)
    session = await gateway.open(websocket)
    token = correlation_id_ctx.set(session.connection_id)

    heartbeat_task = asyncio.create_task(
        _heartbeat(websocket), name=f"ws-heartbeat-{session.connection_id}",
    )
    try:
        await _read_loop(websocket, gateway, session)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WS error for %s", session.username or session.connection_id)
    finally:
        heartbeat_task.cancel()
        await gateway.close(session)
        correlation_id_ctx.reset(token)


async def _heartbeat(ws: WebSocket) -> None:
    interval = settings.WS_HEARTBEAT_SECONDS
    try:
        while True:
            await asyncio.sleep(interval)
            await ws.send_text(WsOutbound(type=OutboundEvent.PONG.value, data={}).model_dump_json())
    except asyncio.CancelledError:
        pass
    except Exception:
        logger.debug("Heartbeat stopped", exc_info=True)


async def _read_loop(ws: WebSocket, gateway: ChatGateway, session: ClientSession) -> None:
    while True:
        raw = await ws.receive_text()
        try:
            msg = WsInbound.model_validate_json(raw)
        except pydantic.ValidationError:
            await ws.send_text(
                WsOutbound(
                    type=OutboundEvent.ERROR.value,
                    data={"code": "invalid_payload", "detail": "Malformed frame"},
                ).model_dump_json()
            )
            continue
        await gateway.handle(session, msg)
