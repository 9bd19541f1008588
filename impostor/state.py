"""Process-wide word bank and room registry.

Both are built once at import from the configured words file and shared by
the websocket and REST routers. Rooms live only in memory.
"""
from __future__ import annotations

from .constants import WORDS_FILE
from .registry import RoomRegistry
from .words import WordBank, load_word_bank

word_bank: WordBank = load_word_bank(WORDS_FILE)

registry = RoomRegistry(word_bank)

__all__ = ["word_bank", "registry"]
