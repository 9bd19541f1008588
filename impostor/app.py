from __future__ import annotations

from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from .constants import LOG_FILE, LOG_LEVEL, STATIC_DIR
from .logging_config import get_logger, setup_logging
from .routers import rooms as rooms_router
from .routers import websockets as ws_router

setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)

# -----------------------------
# FastAPI app instance
# -----------------------------

app = FastAPI(title="Impostor Rooms")

# Browser clients may be served from any host; the static bundle is optional.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(rooms_router.router)
app.include_router(ws_router.router)


@app.get("/health")
async def health():
    return {"status": "ok"}


# -----------------------------
# Static file mounting
# -----------------------------

# The client is served from STATIC_DIR when it is deployed next to the server.
if STATIC_DIR and Path(STATIC_DIR).is_dir():
    app.mount("/", StaticFiles(directory=STATIC_DIR, html=True), name="frontend")
    logger.info(f"Serving static client from {STATIC_DIR}")

__all__ = ["app"]
