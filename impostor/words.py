"""Read-only word bank: category name → ordered list of distinct words."""
from __future__ import annotations

import json
import random
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .errors import InvalidCategory
from .logging_config import get_logger
from .picker import pick_index

logger = get_logger(__name__)


def _dedupe(words: Iterable[str]) -> List[str]:
    seen = set()
    result: List[str] = []
    for word in words:
        if not isinstance(word, str):
            continue
        word = word.strip()
        if not word or word in seen:
            continue
        seen.add(word)
        result.append(word)
    return result


class WordBank:
    """Immutable mapping from category to words, loaded once at startup."""

    def __init__(self, mapping: Mapping[str, Sequence[str]]):
        self._categories: Dict[str, Tuple[str, ...]] = {
            str(category): tuple(_dedupe(words)) for category, words in mapping.items()
        }

    def categories(self) -> List[str]:
        return list(self._categories)

    def has(self, category: Optional[str]) -> bool:
        return category is not None and category in self._categories

    def words(self, category: str) -> Tuple[str, ...]:
        """Return the words of *category*; raise :class:`InvalidCategory` if it is unusable."""
        words = self._categories.get(category)
        if not words:
            raise InvalidCategory(f"Category '{category}' not found")
        return words

    def default_category(self, preferred: Optional[str] = None) -> str:
        if preferred and self._categories.get(preferred):
            return preferred
        for category, words in self._categories.items():
            if words:
                return category
        raise InvalidCategory("Word bank has no usable categories")

    def pick(
        self,
        category: str,
        history: Sequence[int],
        rng: Optional[random.Random] = None,
    ) -> Tuple[int, str, List[int]]:
        """Pick a word for *category*, returning ``(index, word, updated_history)``."""
        words = self.words(category)
        index, updated = pick_index(len(words), history, rng)
        return index, words[index], updated

    def __len__(self) -> int:
        return len(self._categories)


def load_word_bank(path: str | Path) -> WordBank:
    """Load a JSON object of ``{category: [word, ...]}`` from *path*."""
    with open(path, encoding="utf-8") as fh:
        data = json.load(fh)
    if not isinstance(data, dict):
        raise ValueError(f"Word bank at {path} must be a JSON object")
    bank = WordBank(data)
    logger.info(f"Loaded {len(bank)} categories from {path}")
    return bank


__all__ = ["WordBank", "load_word_bank"]
