"""Request-level failures.

Every error raised by the room core is a :class:`GameError`. They are caught
at the event boundary and sent back to the issuing connection; none of them
should ever take the process or another room down.
"""
from __future__ import annotations

from typing import Dict, Optional


class GameError(Exception):
    """Base class for recoverable, caller-visible failures."""

    message = "Request failed"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        self.message = message or self.message

    @property
    def code(self) -> str:
        return type(self).__name__

    def to_payload(self) -> Dict[str, object]:
        return {"ok": False, "error": self.message, "code": self.code}


class RoomNotFound(GameError):
    message = "Room not found"


class NotHost(GameError):
    message = "Only the host can do that"


class InvalidCategory(GameError):
    message = "Category not found"


class EmptyRoom(GameError):
    message = "Room has no players"


class CodeSpaceExhausted(GameError):
    message = "Could not allocate a room code"


class SessionNotFound(GameError):
    message = "Session not found"


class RoomFull(GameError):
    message = "Room is full"


class BadRequest(GameError):
    message = "Malformed request"


__all__ = [
    "GameError",
    "RoomNotFound",
    "NotHost",
    "InvalidCategory",
    "EmptyRoom",
    "CodeSpaceExhausted",
    "SessionNotFound",
    "RoomFull",
    "BadRequest",
]
