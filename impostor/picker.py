"""Anti-repeat word selection.

Picks a word index for a category while keeping a bounded history of past
picks so that the same word does not come back too soon.
"""
from __future__ import annotations

import random
from typing import List, Sequence, Tuple

from .constants import HISTORY_CAP_FLOOR, MIN_HISTORY_CEILING
from .errors import InvalidCategory
from .logging_config import get_logger

logger = get_logger(__name__)


def min_history(word_count: int) -> int:
    """Number of most recent picks that stay excluded once the history is recycled."""
    return min(MIN_HISTORY_CEILING, word_count // 2)


def history_cap(word_count: int) -> int:
    return max(min_history(word_count), HISTORY_CAP_FLOOR)


def pick_index(
    word_count: int,
    history: Sequence[int],
    rng: random.Random | None = None,
) -> Tuple[int, List[int]]:
    """Return ``(index, updated_history)`` for a list of *word_count* words.

    *history* is never mutated; the caller decides whether to persist the
    returned copy.
    """
    if word_count < 1:
        raise InvalidCategory("Category has no words")
    rng = rng or random

    keep = min_history(word_count)
    recent: List[int] = [i for i in history if 0 <= i < word_count]

    while True:
        used = set(recent)
        candidates = [i for i in range(word_count) if i not in used]
        if candidates:
            break
        # Every index has been used: free everything but the last `keep` picks.
        recent = recent[-keep:] if keep else []
        logger.debug(f"History exhausted for {word_count} words, recycled down to {len(recent)}")

    index = rng.choice(candidates)
    recent.append(index)

    cap = history_cap(word_count)
    if len(recent) > cap:
        recent = recent[-cap:]
    return index, recent


__all__ = ["pick_index", "min_history", "history_cap"]
