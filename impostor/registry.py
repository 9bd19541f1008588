"""Process-wide ownership of every live room.

The registry hands out room codes, resolves codes and connections to rooms
and tears rooms down once nobody is left in them. Offline members are
removed after a grace window by a deferred task that re-checks the room
before touching it.
"""
from __future__ import annotations

import asyncio
import random
from typing import Dict, List, Optional, Tuple

from .connection import Connection
from .constants import (
    DEFAULT_CATEGORY,
    MAX_CODE_ATTEMPTS,
    OFFLINE_GRACE_SECONDS,
    ROOM_CODE_ALPHABET,
    ROOM_CODE_LENGTH,
)
from .errors import CodeSpaceExhausted, RoomNotFound
from .logging_config import get_logger
from .room import JoinResult, Room, clean_name
from .schemas import Player
from .words import WordBank

logger = get_logger(__name__)


def normalize_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


class RoomRegistry:
    def __init__(
        self,
        word_bank: WordBank,
        rng: Optional[random.Random] = None,
        grace_seconds: float = OFFLINE_GRACE_SECONDS,
        default_category: str = DEFAULT_CATEGORY,
    ):
        self.word_bank = word_bank
        self.rng = rng or random.Random()
        self.grace_seconds = grace_seconds
        self.default_category = default_category
        self.rooms: Dict[str, Room] = {}

    # ---------------------------------------------------------------------
    # Codes & lookups
    # ---------------------------------------------------------------------

    def generate_code(self) -> str:
        for _ in range(MAX_CODE_ATTEMPTS):
            code = "".join(self.rng.choice(ROOM_CODE_ALPHABET) for _ in range(ROOM_CODE_LENGTH))
            if code not in self.rooms:
                return code
        logger.error(f"No free room code after {MAX_CODE_ATTEMPTS} attempts ({len(self.rooms)} rooms live)")
        raise CodeSpaceExhausted()

    def find(self, code: Optional[str]) -> Optional[Room]:
        return self.rooms.get(normalize_code(code))

    def get(self, code: Optional[str]) -> Room:
        room = self.find(code)
        if room is None:
            raise RoomNotFound()
        return room

    def find_room_for_connection(self, connection: Connection) -> Optional[Room]:
        for room in self.rooms.values():
            if room.session_for(connection) is not None:
                return room
        return None

    # -------------------- Lifecycle -------------------- #

    def create_room(self, connection: Connection, name: Optional[str], category: Optional[str] = None) -> Tuple[Room, Player]:
        """Create a room with the caller as its first member and host."""
        if category:
            self.word_bank.words(category)
        else:
            category = self.word_bank.default_category(self.default_category)
        code = self.generate_code()

        host = Player(name=clean_name(name))
        room = Room(code, category, host, connection)
        self.rooms[code] = room
        logger.info(f"Room {code} created by {host.name} (category '{category}', {len(self.rooms)} rooms live)")
        return room, host

    def join_room(self, connection: Connection, code: Optional[str], name: Optional[str], session_id: Optional[str] = None) -> Tuple[Room, JoinResult]:
        room = self.get(code)
        result = room.join(connection, name, session_id)
        for orphan_id in result.orphaned:
            self.schedule_expiry(room, orphan_id)
        return room, result

    def leave_room(self, code: Optional[str], session_id: str) -> Tuple[Room, Player]:
        """Permanently remove *session_id*; an emptied room is destroyed right away."""
        room = self.get(code)
        player = room.remove_player(session_id)
        if room.is_empty():
            self.destroy_room(room.code)
        return room, player

    def destroy_room(self, code: str) -> bool:
        room = self.rooms.pop(code, None)
        if room is None:
            return False
        room.cancel_all_expiry()
        room.host_id = None
        logger.info(f"Room {code} destroyed ({len(self.rooms)} rooms live)")
        return True

    def rooms_for_connection(self, connection: Connection, exclude: Optional[Room] = None) -> List[Room]:
        """Every room other than *exclude* where *connection* is still attached to a member."""
        return [
            room
            for room in self.rooms.values()
            if room is not exclude and room.session_for(connection) is not None
        ]

    def mark_offline(self, room: Room, connection: Connection) -> Optional[Player]:
        player = room.mark_offline(connection)
        if player is not None:
            self.schedule_expiry(room, player.session_id)
        return player

    # -------------------- Offline grace window -------------------- #

    def schedule_expiry(self, room: Room, session_id: str) -> None:
        previous = room.expiry_tasks.pop(session_id, None)
        if previous is not None and not previous.done():
            previous.cancel()
        room.expiry_tasks[session_id] = asyncio.create_task(self._expire_later(room, session_id))

    async def _expire_later(self, room: Room, session_id: str) -> None:
        try:
            await asyncio.sleep(self.grace_seconds)
        except asyncio.CancelledError:
            return
        if room.expiry_tasks.get(session_id) is asyncio.current_task():
            room.expiry_tasks.pop(session_id)
        async with room.lock:
            if self.expire_session(room, session_id) and room.code in self.rooms:
                await room.broadcast_state()

    def expire_session(self, room: Room, session_id: str) -> bool:
        """Remove a member whose grace window ran out, if that still applies.

        The room may have changed since the check was scheduled: it may be
        gone, or the member may have reconnected or left on their own.
        """
        if self.rooms.get(room.code) is not room:
            return False
        if session_id not in room.players or room.is_online(session_id):
            return False
        player = room.remove_player(session_id)
        logger.info(f"Room {room.code}: {player.name} timed out after {self.grace_seconds:g}s offline")
        if room.is_empty():
            self.destroy_room(room.code)
        return True


__all__ = ["RoomRegistry", "normalize_code"]
