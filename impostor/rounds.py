"""Round engine: word selection, impostor choice and private role delivery.

Functions here work on in-memory :class:`impostor.room.Room` instances and a
:class:`impostor.words.WordBank`; the event dispatcher calls them without
knowing anything about the transport.

The room moves between two states::

    waiting      --start_round-->  round_active
    round_active --start_round-->  round_active   (next round, no explicit end)
    round_active --set_category--> waiting
    waiting      --set_category--> waiting
"""
from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Dict, List, Optional

from .constants import (
    AUTO_START_WHEN_READY,
    ROLE_IMPOSTOR,
    ROLE_PLAYER,
    STATE_ROUND_ACTIVE,
    STATE_WAITING,
)
from .errors import EmptyRoom, GameError
from .logging_config import get_logger
from .room import Room
from .schemas import RoundData
from .words import WordBank

logger = get_logger(__name__)

START_ROUND = "start_round"
SET_CATEGORY = "set_category"

_TRANSITIONS = {
    (STATE_WAITING, START_ROUND): STATE_ROUND_ACTIVE,
    (STATE_ROUND_ACTIVE, START_ROUND): STATE_ROUND_ACTIVE,
    (STATE_WAITING, SET_CATEGORY): STATE_WAITING,
    (STATE_ROUND_ACTIVE, SET_CATEGORY): STATE_WAITING,
}


def transition(state: str, action: str) -> str:
    try:
        return _TRANSITIONS[(state, action)]
    except KeyError:
        raise ValueError(f"No transition from {state!r} on {action!r}") from None


# ---------------------------------------------------------------------------
# Round planning (pure) & application (mutating)
# ---------------------------------------------------------------------------

@dataclass
class RoundPlan:
    category: str
    word_index: int
    word: str
    history: List[int]
    impostor_id: str
    assignments: Dict[str, RoundData]


def plan_round(room: Room, issuer_id: Optional[str], bank: WordBank, rng: Optional[random.Random] = None) -> RoundPlan:
    """Validate a round start and work out its outcome without touching *room*."""
    rng = rng or random
    if room.is_empty():
        raise EmptyRoom()
    room.require_host(issuer_id)

    history = room.used_words.get(room.category, [])
    index, word, updated = bank.pick(room.category, history, rng)

    members = list(room.players)
    impostor_id = members[rng.randrange(len(members))]
    round_number = room.round_number + 1

    assignments = {
        session_id: RoundData(
            role=ROLE_IMPOSTOR if session_id == impostor_id else ROLE_PLAYER,
            word=None if session_id == impostor_id else word,
            round_number=round_number,
            category=room.category,
        )
        for session_id in members
    }
    return RoundPlan(
        category=room.category,
        word_index=index,
        word=word,
        history=updated,
        impostor_id=impostor_id,
        assignments=assignments,
    )


def apply_round(room: Room, plan: RoundPlan) -> None:
    room.used_words[plan.category] = plan.history
    room.round_number += 1
    room.state = transition(room.state, START_ROUND)
    room.assignments = plan.assignments
    for player in room.players.values():
        player.ready = False


async def send_private_info(room: Room, session_id: str) -> bool:
    """Send *session_id* their role for the current round (used on reconnect)."""
    data = room.assignments.get(session_id)
    if room.state != STATE_ROUND_ACTIVE or data is None:
        return False
    return await room.send_to(session_id, "roundData", data.wire())


async def start_round(room: Room, issuer_id: Optional[str], bank: WordBank, rng: Optional[random.Random] = None) -> RoundPlan:
    """Run a full round: validate, persist, then deliver roles one member at a time."""
    plan = plan_round(room, issuer_id, bank, rng)
    await _run_round(room, plan)
    return plan


async def _run_round(room: Room, plan: RoundPlan) -> None:
    apply_round(room, plan)
    logger.info(
        f"Room {room.code}: round {room.round_number} started in '{plan.category}' "
        f"with {len(plan.assignments)} players"
    )
    logger.debug(f"Room {room.code}: word index {plan.word_index}, history size {len(plan.history)}")

    # Never broadcast: the impostor must not see the word.
    for session_id in plan.assignments:
        await send_private_info(room, session_id)
    await room.broadcast_state()


# ---------------------------------------------------------------------------
# Lobby controls
# ---------------------------------------------------------------------------

def set_category(room: Room, issuer_id: Optional[str], category: str, bank: WordBank) -> bool:
    """Switch the room's category; returns False when it was already selected."""
    room.require_host(issuer_id)
    bank.words(category)
    if category == room.category:
        return False
    room.category = category
    room.used_words[category] = []
    room.state = transition(room.state, SET_CATEGORY)
    room.assignments = {}
    logger.info(f"Room {room.code}: category changed to '{category}'")
    return True


async def change_category(room: Room, issuer_id: Optional[str], category: str, bank: WordBank) -> bool:
    changed = set_category(room, issuer_id, category, bank)
    if changed:
        await room.broadcast("categoryChanged", category)
        await room.broadcast_state()
    return changed


async def set_ready(
    room: Room,
    session_id: str,
    ready: bool,
    bank: WordBank,
    rng: Optional[random.Random] = None,
    auto_start: bool = AUTO_START_WHEN_READY,
) -> Optional[RoundPlan]:
    """Record a ready flag; start the next round for the host once everyone is ready."""
    room.set_ready(session_id, ready)
    if auto_start and room.all_ready():
        try:
            plan = plan_round(room, room.host_id, bank, rng)
        except GameError as e:
            logger.warning(f"Room {room.code}: everyone is ready but the round cannot start: {e.message}")
        else:
            logger.info(f"Room {room.code}: all players ready, starting next round")
            await _run_round(room, plan)
            return plan
    await room.broadcast_state()
    return None


__all__ = [
    "RoundPlan",
    "transition",
    "plan_round",
    "apply_round",
    "start_round",
    "send_private_info",
    "set_category",
    "change_category",
    "set_ready",
]
