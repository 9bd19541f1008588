from __future__ import annotations

import uuid
from typing import Any, Optional

from fastapi import WebSocket


class Connection:
    """One live client transport.

    Rooms hold on to these only as the *current* handle of a player; the
    player's identity is its session id, which outlives any connection.
    """

    def __init__(self, ws: Optional[WebSocket] = None, connection_id: Optional[str] = None):
        self.ws = ws
        self.connection_id = connection_id or uuid.uuid4().hex

    async def emit(self, event: str, data: Any = None) -> None:
        await self.ws.send_json({"event": event, "data": data})

    async def ack(self, ack_id: Any, data: Any) -> None:
        await self.ws.send_json({"event": "ack", "ack": ack_id, "data": data})

    def __repr__(self) -> str:
        return f"<Connection {self.connection_id}>"


__all__ = ["Connection"]
