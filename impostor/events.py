"""Client event handlers and the single dispatcher used by the websocket route.

Each handler validates its payload, resolves the target room, applies the
change under that room's lock and notifies members before the lock is
released, so notifications leave in the order the changes were made. The
returned value is the acknowledgement sent back to the caller.
"""
from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, Optional

from pydantic import ValidationError

from .connection import Connection
from .errors import BadRequest, GameError, RoomNotFound, SessionNotFound
from .logging_config import get_logger
from .registry import RoomRegistry
from .rounds import change_category, send_private_info, set_ready, start_round
from .schemas import (
    CreateRoomRequest,
    JoinRoomRequest,
    LeaveRoomRequest,
    RoomResponse,
    SetCategoryRequest,
    SetReadyRequest,
    StartRoundRequest,
)

logger = get_logger(__name__)

INTERNAL_ERROR = {"ok": False, "error": "Internal error", "code": "InternalError"}

Handler = Callable[[RoomRegistry, Connection, Any], Awaitable[Any]]


def _parse(model, data: Any):
    try:
        return model.model_validate(data if data is not None else {})
    except ValidationError as e:
        raise BadRequest(f"Invalid payload: {e.errors()[0].get('msg', 'validation error')}") from None


# ---------------------------------------------------------------------------
# Room membership
# ---------------------------------------------------------------------------

async def handle_create_room(registry: RoomRegistry, connection: Connection, data: Any) -> dict:
    req = _parse(CreateRoomRequest, data)
    room, host = registry.create_room(connection, req.name, req.category)
    await _leave_other_rooms(registry, connection, keep=room)
    async with room.lock:
        await connection.emit("roomCreated", {"code": room.code, "sessionId": host.session_id})
        await room.broadcast_state()
    return RoomResponse(code=room.code, session_id=host.session_id).wire()


async def handle_join_room(registry: RoomRegistry, connection: Connection, data: Any) -> dict:
    req = _parse(JoinRoomRequest, data)
    room = registry.get(req.code)
    async with room.lock:
        _ensure_live(registry, room)
        room, result = registry.join_room(connection, room.code, req.name, req.session_id)
        player = result.player
        if result.displaced is not None:
            try:
                await result.displaced.emit("kicked", {"reason": "Connected from another client"})
            except Exception:
                logger.debug(f"Room {room.code}: displaced connection already gone", exc_info=True)
        if result.reconnected:
            await connection.emit("reconnected", {"code": room.code, "sessionId": player.session_id})
        await room.broadcast_state()
        if result.reconnected:
            await send_private_info(room, player.session_id)
    await _leave_other_rooms(registry, connection, keep=room)
    return RoomResponse(code=room.code, session_id=player.session_id, reconnected=result.reconnected).wire()


async def handle_leave_room(registry: RoomRegistry, connection: Connection, data: Any) -> dict:
    req = _parse(LeaveRoomRequest, data)
    room = registry.get(req.code)
    async with room.lock:
        _ensure_live(registry, room)
        registry.leave_room(room.code, req.session_id)
        if not room.is_empty():
            await room.broadcast_state()
    return {"ok": True}


def _ensure_live(registry: RoomRegistry, room) -> None:
    # The room may have been torn down while we waited for its lock.
    if registry.find(room.code) is not room:
        raise RoomNotFound()


async def _leave_other_rooms(registry: RoomRegistry, connection: Connection, keep) -> None:
    for other in registry.rooms_for_connection(connection, exclude=keep):
        async with other.lock:
            if registry.mark_offline(other, connection) is not None:
                await other.broadcast_state()


async def handle_disconnect(registry: RoomRegistry, connection: Connection) -> None:
    """The transport closed; the member goes offline but keeps their slot."""
    room = registry.find_room_for_connection(connection)
    if room is None:
        return
    async with room.lock:
        if registry.mark_offline(room, connection) is not None:
            await room.broadcast_state()


# ---------------------------------------------------------------------------
# Host controls & rounds
# ---------------------------------------------------------------------------

async def handle_set_category(registry: RoomRegistry, connection: Connection, data: Any) -> dict:
    req = _parse(SetCategoryRequest, data)
    room = registry.get(req.code)
    async with room.lock:
        _ensure_live(registry, room)
        await change_category(room, room.session_for(connection), req.category, registry.word_bank)
    return {"ok": True}


async def handle_start_round(registry: RoomRegistry, connection: Connection, data: Any) -> dict:
    req = _parse(StartRoundRequest, data)
    room = registry.get(req.code)
    async with room.lock:
        _ensure_live(registry, room)
        await start_round(room, room.session_for(connection), registry.word_bank, registry.rng)
    return {"ok": True}


async def handle_set_ready(registry: RoomRegistry, connection: Connection, data: Any) -> dict:
    req = _parse(SetReadyRequest, data)
    room = registry.find_room_for_connection(connection)
    if room is None:
        raise SessionNotFound("Not in a room")
    async with room.lock:
        session_id = room.session_for(connection)
        if session_id is None:
            raise SessionNotFound("Not in a room")
        await set_ready(room, session_id, req.ready, registry.word_bank, registry.rng)
    return {"ok": True}


async def handle_list_categories(registry: RoomRegistry, connection: Connection, data: Any) -> list:
    return registry.word_bank.categories()


# ---------------------------------------------------------------------------
# Primary dispatcher used by websocket endpoint
# ---------------------------------------------------------------------------

HANDLERS: Dict[str, Handler] = {
    "createRoom": handle_create_room,
    "joinRoom": handle_join_room,
    "leaveRoom": handle_leave_room,
    "setCategory": handle_set_category,
    "startRound": handle_start_round,
    "setReady": handle_set_ready,
    "listCategories": handle_list_categories,
}


async def handle_event(registry: RoomRegistry, connection: Connection, event: Optional[str], data: Any = None) -> Any:
    """Run one client event to completion and return its acknowledgement payload.

    Failures never escape: request errors become ``{"ok": False, ...}`` and
    anything unexpected is logged and reported as an internal error.
    """
    try:
        handler = HANDLERS.get(event) if isinstance(event, str) else None
        if handler is None:
            raise BadRequest(f"Unknown event '{event}'")
        return await handler(registry, connection, data)
    except GameError as e:
        logger.warning(f"{event} from {connection!r} rejected: {e.code}: {e.message}")
        return e.to_payload()
    except Exception:
        logger.exception(f"Unhandled error while processing {event} from {connection!r}")
        return dict(INTERNAL_ERROR)


__all__ = [
    "HANDLERS",
    "handle_event",
    "handle_disconnect",
    "handle_create_room",
    "handle_join_room",
    "handle_leave_room",
    "handle_set_category",
    "handle_start_round",
    "handle_set_ready",
    "handle_list_categories",
]
