"""Pydantic data schemas used across the service.

Runtime player records, the public room snapshot that gets broadcast, the
private per-player round payload and one request model per client event all
live here. Wire payloads use camelCase keys (``sessionId``, ``roundNumber``)
while Python code uses snake_case attribute names.
"""
from __future__ import annotations

import uuid
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .constants import STATE_WAITING


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def wire(self) -> dict:
        return self.model_dump(by_alias=True)


# -----------------------------
# Runtime
# -----------------------------

class Player(WireModel):
    """A durable member identity inside a room.

    ``session_id`` is the secret token the client keeps across connections;
    ``player_id`` is the public handle other members see.
    """

    session_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    player_id: str = Field(default_factory=lambda: uuid.uuid4().hex[:8])
    name: str
    ready: bool = False


class PublicPlayer(WireModel):
    player_id: str
    name: str
    ready: bool = False
    connected: bool = True
    host: bool = False


class RoomState(WireModel):
    code: str
    category: str
    host_id: Optional[str] = None  # public player_id of the host
    players: List[PublicPlayer] = []
    state: str = STATE_WAITING  # waiting | round_active
    round_number: int = 0


class RoundData(WireModel):
    """Private role assignment; sent to exactly one member."""

    role: str
    word: Optional[str] = None
    round_number: int
    category: str


# -----------------------------
# Client event payloads
# -----------------------------

class CreateRoomRequest(WireModel):
    name: Optional[str] = None
    category: Optional[str] = None


class JoinRoomRequest(WireModel):
    code: str
    name: Optional[str] = None
    session_id: Optional[str] = None


class LeaveRoomRequest(WireModel):
    code: str
    session_id: str


class SetCategoryRequest(WireModel):
    code: str
    category: str


class StartRoundRequest(WireModel):
    code: str


class SetReadyRequest(WireModel):
    ready: bool = True


# -----------------------------
# Acknowledgements & REST
# -----------------------------

class RoomResponse(WireModel):
    ok: bool = True
    code: str
    session_id: str
    reconnected: bool = False


class RoomSummary(WireModel):
    code: str
    category: str
    host_name: Optional[str] = None
    player_count: int
    online_count: int
    state: str
    round_number: int


__all__ = [
    "WireModel",
    # runtime
    "Player",
    "PublicPlayer",
    "RoomState",
    "RoundData",
    # events
    "CreateRoomRequest",
    "JoinRoomRequest",
    "LeaveRoomRequest",
    "SetCategoryRequest",
    "StartRoundRequest",
    "SetReadyRequest",
    # responses
    "RoomResponse",
    "RoomSummary",
]
