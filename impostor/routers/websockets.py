from __future__ import annotations

import json

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ..connection import Connection
from ..errors import BadRequest
from ..events import handle_disconnect, handle_event
from ..logging_config import get_logger
from ..state import registry

router = APIRouter(prefix="", tags=["ws"])

logger = get_logger(__name__)


@router.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    """Event socket: ``{"event", "data", "ack"?}`` frames in, events and acks out."""
    await ws.accept()
    connection = Connection(ws)
    logger.debug(f"{connection!r} opened")
    try:
        while True:
            message = await ws.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))
            raw = message.get("text")
            frame = None
            if raw is not None:
                try:
                    frame = json.loads(raw)
                except json.JSONDecodeError:
                    pass
            if not isinstance(frame, dict):
                await connection.emit("errorMsg", BadRequest("Frames must be JSON objects").to_payload())
                continue

            event = frame.get("event")
            ack_id = frame.get("ack")
            result = await handle_event(registry, connection, event, frame.get("data"))

            if ack_id is not None:
                await connection.ack(ack_id, result)
            elif isinstance(result, dict) and result.get("ok") is False:
                await connection.emit("joinFailed" if event == "joinRoom" else "errorMsg", result)
    except WebSocketDisconnect:
        logger.debug(f"{connection!r} closed")
    except Exception:
        logger.exception(f"WebSocket error on {connection!r}")
    finally:
        await handle_disconnect(registry, connection)
