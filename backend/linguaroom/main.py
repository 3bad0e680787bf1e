"""
linguaroom — FastAPI backend entry point.

Serves rooms, room chat, room presence, profiles and direct messages over REST, and each room's
broadcast topic (peer signaling + chat notifications) over WebSocket.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Query, Request, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from linguaroom.api import conversations, health, languages, messages, profiles, rooms
from linguaroom.config import settings
from linguaroom.database import get_db, init_db
from linguaroom.redis.client import close_redis, init_redis
from linguaroom.websocket.room_handler import room_ws_handler

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

init_db()


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_redis()
    yield
    await close_redis()


app = FastAPI(
    title="linguaroom",
    description="Language-exchange rooms with peer-to-peer audio",
    version="1.0.0",
    debug=settings.DEBUG,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------
# Browsers reject a literal "*" origin together with credentials, so a
# wildcard entry (dev) becomes allow_origin_regex=".*".
_cors_origins = [o for o in settings.CORS_ORIGINS if o != "*"]
_cors_regex = ".*" if len(_cors_origins) < len(settings.CORS_ORIGINS) else None

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_origin_regex=_cors_regex,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
app.include_router(health.router)
app.include_router(rooms.router, prefix="/api")
app.include_router(messages.router, prefix="/api")
app.include_router(languages.router, prefix="/api")
app.include_router(profiles.router, prefix="/api")
app.include_router(conversations.router, prefix="/api")

# ---------------------------------------------------------------------------
# WebSocket endpoint
# ---------------------------------------------------------------------------


@app.websocket("/ws/rooms/{room_id}")
async def room_websocket_endpoint(
    websocket: WebSocket,
    room_id: int,
    user_id: str = Query(..., min_length=1, max_length=64),
    db: Session = Depends(get_db),
) -> None:
    await room_ws_handler(websocket, room_id, user_id, db)


# ---------------------------------------------------------------------------
# Custom exception handlers
# ---------------------------------------------------------------------------


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})
