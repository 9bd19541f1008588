from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .connection import Connection
from .constants import (
    DEFAULT_PLAYER_NAME,
    MAX_NAME_LENGTH,
    MAX_PLAYERS,
    STATE_WAITING,
)
from .errors import NotHost, RoomFull, SessionNotFound
from .logging_config import get_logger
from .schemas import Player, PublicPlayer, RoomState, RoomSummary, RoundData

logger = get_logger(__name__)

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
_WHITESPACE = re.compile(r"\s+")


def clean_name(name: Optional[str]) -> str:
    """Strip control characters, collapse whitespace and truncate a display name."""
    if not isinstance(name, str):
        return DEFAULT_PLAYER_NAME
    name = _WHITESPACE.sub(" ", name)
    name = _CONTROL_CHARS.sub("", name).strip()[:MAX_NAME_LENGTH].strip()
    return name or DEFAULT_PLAYER_NAME


@dataclass
class JoinResult:
    player: Player
    reconnected: bool = False
    # Old live connection of the same session, replaced by the new one
    displaced: Optional[Connection] = None
    # Sessions in this room that were bound to the joining connection and are now offline
    orphaned: List[str] = field(default_factory=list)


class Room:
    """Runtime state and live connections for one game lobby.

    ``players`` preserves join order, which is what host migration relies on.
    A player without an entry in ``connections`` is offline but still a full
    member until they leave or their grace window runs out.
    """

    def __init__(self, code: str, category: str, host_player: Player, connection: Optional[Connection] = None):
        self.code = code
        self.category = category
        self.host_id: Optional[str] = host_player.session_id
        self.players: Dict[str, Player] = {host_player.session_id: host_player}
        # active connections: session_id -> connection
        self.connections: Dict[str, Connection] = {}
        if connection is not None:
            self.connections[host_player.session_id] = connection

        self.state = STATE_WAITING
        self.round_number: int = 0
        # category -> recent word indices, oldest first
        self.used_words: Dict[str, List[int]] = {}
        # private role payloads of the current round: session_id -> RoundData
        self.assignments: Dict[str, RoundData] = {}

        # Pending offline-expiry checks: session_id -> task
        self.expiry_tasks: Dict[str, asyncio.Task] = {}
        self.lock = asyncio.Lock()

    # ---------------------------------------------------------------------
    # Lookups
    # ---------------------------------------------------------------------

    @property
    def host_player(self) -> Optional[Player]:
        return self.players.get(self.host_id) if self.host_id else None

    def is_empty(self) -> bool:
        return not self.players

    def is_online(self, session_id: str) -> bool:
        return session_id in self.connections

    def all_offline(self) -> bool:
        return not self.connections

    def session_for(self, connection: Connection) -> Optional[str]:
        """Return the session currently attached to *connection*, if any."""
        for session_id, conn in self.connections.items():
            if conn is connection:
                return session_id
        return None

    def require_host(self, session_id: Optional[str]) -> None:
        if session_id is None or session_id != self.host_id:
            raise NotHost()

    def all_ready(self) -> bool:
        return bool(self.players) and all(p.ready for p in self.players.values())

    # -------------------- Player management -------------------- #

    def join(self, connection: Connection, name: Optional[str], session_id: Optional[str] = None) -> JoinResult:
        """Attach *connection* to an existing session or admit a new player.

        A presented *session_id* that is not a member here is ignored and a
        fresh identity is issued instead.
        """
        existing = self.players.get(session_id) if session_id else None
        if existing is not None:
            previous = self.connections.get(existing.session_id)
            self.connections[existing.session_id] = connection
            if name:
                existing.name = clean_name(name)
            self._cancel_expiry(existing.session_id)
            result = JoinResult(
                player=existing,
                reconnected=True,
                displaced=previous if previous is not connection else None,
            )
            logger.info(f"Room {self.code}: {existing.name} reconnected")
        else:
            if len(self.players) >= MAX_PLAYERS:
                raise RoomFull()
            player = Player(name=clean_name(name))
            self.players[player.session_id] = player
            self.connections[player.session_id] = connection
            if self.host_id is None:
                self.host_id = player.session_id
            result = JoinResult(player=player)
            logger.info(f"Room {self.code}: {player.name} joined ({len(self.players)} players)")

        for other_id, conn in list(self.connections.items()):
            if conn is connection and other_id != result.player.session_id:
                self.connections.pop(other_id)
                self.players[other_id].ready = False
                result.orphaned.append(other_id)
        return result

    def mark_offline(self, connection: Connection) -> Optional[Player]:
        """Detach *connection*; the player stays a member."""
        session_id = self.session_for(connection)
        if session_id is None:
            return None
        self.connections.pop(session_id, None)
        player = self.players[session_id]
        player.ready = False
        logger.info(f"Room {self.code}: {player.name} went offline")
        return player

    def remove_player(self, session_id: str) -> Player:
        """Permanently remove a member, handing host authority on if needed."""
        player = self.players.pop(session_id, None)
        if player is None:
            raise SessionNotFound()
        self.connections.pop(session_id, None)
        self.assignments.pop(session_id, None)
        self._cancel_expiry(session_id)

        if session_id == self.host_id:
            # Earliest-joined remaining member inherits host authority.
            self.host_id = next(iter(self.players), None)
            new_host = self.host_player
            if new_host is not None:
                logger.info(f"Room {self.code}: host passed from {player.name} to {new_host.name}")
        logger.info(f"Room {self.code}: {player.name} left ({len(self.players)} players)")
        return player

    def set_ready(self, session_id: str, ready: bool) -> None:
        player = self.players.get(session_id)
        if player is None:
            raise SessionNotFound()
        player.ready = ready

    def _cancel_expiry(self, session_id: str) -> None:
        task = self.expiry_tasks.pop(session_id, None)
        if task is not None and not task.done():
            task.cancel()

    def cancel_all_expiry(self) -> None:
        for session_id in list(self.expiry_tasks):
            self._cancel_expiry(session_id)

    # -------------------- Views -------------------- #

    def snapshot(self) -> RoomState:
        """Public state; session ids never appear in it."""
        host = self.host_player
        return RoomState(
            code=self.code,
            category=self.category,
            host_id=host.player_id if host else None,
            players=[
                PublicPlayer(
                    player_id=p.player_id,
                    name=p.name,
                    ready=p.ready,
                    connected=p.session_id in self.connections,
                    host=p.session_id == self.host_id,
                )
                for p in self.players.values()
            ],
            state=self.state,
            round_number=self.round_number,
        )

    def summary(self) -> RoomSummary:
        host = self.host_player
        return RoomSummary(
            code=self.code,
            category=self.category,
            host_name=host.name if host else None,
            player_count=len(self.players),
            online_count=len(self.connections),
            state=self.state,
            round_number=self.round_number,
        )

    # -------------------- Broadcasting helpers -------------------- #

    async def send_to(self, session_id: str, event: str, data) -> bool:
        """Deliver *event* to one member; returns False if they are offline or the send failed."""
        conn = self.connections.get(session_id)
        if conn is None:
            return False
        try:
            await conn.emit(event, data)
        except Exception:
            logger.warning(f"Room {self.code}: failed to deliver {event} to {conn!r}", exc_info=True)
            return False
        return True

    async def broadcast(self, event: str, data) -> None:
        """Send *event* to every online member."""
        for session_id in list(self.connections):
            await self.send_to(session_id, event, data)

    async def broadcast_state(self) -> None:
        await self.broadcast("roomUpdate", self.snapshot().wire())


__all__ = ["Room", "JoinResult", "clean_name"]
