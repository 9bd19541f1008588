import os
from pathlib import Path

# -----------------------------
# Process configuration (environment)
# -----------------------------

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 8000))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", None)
STATIC_DIR = os.getenv("STATIC_DIR", "frontend")

WORDS_FILE = os.getenv("WORDS_FILE", str(Path(__file__).parent / "data" / "words.json"))
DEFAULT_CATEGORY = os.getenv("DEFAULT_CATEGORY", "General")

# Seconds an offline member keeps their slot before being removed for good.
OFFLINE_GRACE_SECONDS = float(os.getenv("OFFLINE_GRACE_SECONDS", 300))

MAX_PLAYERS = int(os.getenv("MAX_PLAYERS", 20))
MAX_NAME_LENGTH = int(os.getenv("MAX_NAME_LENGTH", 24))
DEFAULT_PLAYER_NAME = os.getenv("DEFAULT_PLAYER_NAME", "Anon")

ROOM_CODE_LENGTH = int(os.getenv("ROOM_CODE_LENGTH", 4))
# No 0/O or 1/I so codes can be read aloud and typed back.
ROOM_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
MAX_CODE_ATTEMPTS = int(os.getenv("MAX_CODE_ATTEMPTS", 100))

AUTO_START_WHEN_READY = os.getenv("AUTO_START_WHEN_READY", "true").lower() in {"1", "true", "yes"}

# -----------------------------
# Anti-repeat picker bounds
# -----------------------------

MIN_HISTORY_CEILING = 100
HISTORY_CAP_FLOOR = 200

# -----------------------------
# Roles & round states
# -----------------------------

ROLE_PLAYER = "player"
ROLE_IMPOSTOR = "impostor"

STATE_WAITING = "waiting"
STATE_ROUND_ACTIVE = "round_active"

__all__ = [
    "HOST",
    "PORT",
    "LOG_LEVEL",
    "LOG_FILE",
    "STATIC_DIR",
    "WORDS_FILE",
    "DEFAULT_CATEGORY",
    "OFFLINE_GRACE_SECONDS",
    "MAX_PLAYERS",
    "MAX_NAME_LENGTH",
    "DEFAULT_PLAYER_NAME",
    "ROOM_CODE_LENGTH",
    "ROOM_CODE_ALPHABET",
    "MAX_CODE_ATTEMPTS",
    "AUTO_START_WHEN_READY",
    "MIN_HISTORY_CEILING",
    "HISTORY_CAP_FLOOR",
    "ROLE_PLAYER",
    "ROLE_IMPOSTOR",
    "STATE_WAITING",
    "STATE_ROUND_ACTIVE",
]
