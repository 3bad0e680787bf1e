"""Room broadcast topic over WebSocket.

Every client attached to /ws/rooms/{room_id} shares one topic.  Envelopes
are ``{"event": str, "payload": object}``.  The relay stamps the sender's
identity onto signaling payloads so a client can only speak for itself, and
delivers offers (and targeted answers) to their target alone.
"""

import json
import logging

from fastapi import WebSocket, WebSocketDisconnect
from pydantic import ValidationError
from sqlalchemy.orm import Session

from linguaroom.core import events
from linguaroom.models.room import Room
from linguaroom.redis import participants as participants_mgr
from linguaroom.schemas.signaling import AnswerPayload, OfferPayload, dump_signal, parse_signal
from linguaroom.websocket.manager import room_manager

logger = logging.getLogger(__name__)


def _envelope(event: str, payload: dict) -> dict:
    return {"event": event, "payload": payload}


async def _relay(room_id: int, user_id: str, event: str, payload: dict) -> None:
    """Validate one signaling envelope from ``user_id`` and forward it."""
    try:
        signal = parse_signal(event, payload)
    except ValidationError as exc:
        logger.info("room %s: dropping malformed %r from %s: %s", room_id, event, user_id, exc)
        return

    if isinstance(signal, OfferPayload | AnswerPayload):
        signal.caller = user_id
        target = signal.target
        if target is not None:
            if target == user_id or not room_manager.is_connected(room_id, target):
                logger.debug("room %s: %s target %s not attached, dropped", room_id, event, target)
                return
            await room_manager.send_to(room_id, target, _envelope(event, dump_signal(signal)))
            return
    else:
        signal.user_id = user_id

    await room_manager.broadcast(room_id, _envelope(event, dump_signal(signal)), exclude=user_id)


async def _announce_departure(room_id: int, user_id: str) -> None:
    await participants_mgr.leave_room(room_id, user_id)
    await room_manager.broadcast(room_id, _envelope(events.USER_LEFT, {"userId": user_id}))


async def evict(room_id: int, user_id: str, code: int) -> bool:
    """Detach a user from the room server-side and close their socket.

    Peers are told ``user-left`` right away; the socket's own handler then
    finds itself unregistered and exits without announcing again.
    """
    websocket = room_manager.get(room_id, user_id)
    if websocket is None or not room_manager.disconnect(room_id, user_id, websocket):
        return False
    await _announce_departure(room_id, user_id)
    try:
        await websocket.close(code=code)
    except Exception as exc:
        logger.debug("room %s: closing %s's socket failed: %s", room_id, user_id, exc)
    return True


async def evict_all(room_id: int, code: int) -> int:
    evicted = 0
    for user_id in room_manager.get_room_users(room_id):
        if await evict(room_id, user_id, code):
            evicted += 1
    return evicted


async def room_ws_handler(websocket: WebSocket, room_id: int, user_id: str, db: Session) -> None:
    """Full lifecycle handler for a room's broadcast topic."""
    room = db.query(Room).filter(Room.id == room_id, Room.is_active == True).first()  # noqa: E712
    if room is None:
        await websocket.close(code=events.CLOSE_ROOM_NOT_FOUND)
        return
    if (
        not room_manager.is_connected(room_id, user_id)
        and room_manager.count(room_id) >= room.max_participants
    ):
        await websocket.close(code=events.CLOSE_ROOM_FULL)
        return

    await websocket.accept()
    await room_manager.connect(room_id, user_id, websocket)
    role = "host" if user_id == room.host_id else "audience"
    await participants_mgr.join_room(room_id, user_id, role=role)

    try:
        # ── Message loop ───────────────────────────────────────────────
        # Ends once the socket is replaced, kicked or its room closed.
        while room_manager.holds(room_id, user_id, websocket):
            raw = await websocket.receive_text()
            if not room_manager.holds(room_id, user_id, websocket):
                break
            try:
                msg = json.loads(raw)
            except ValueError:
                continue
            if not isinstance(msg, dict):
                continue

            event = msg.get("event")
            payload = msg.get("payload")
            if not isinstance(payload, dict):
                payload = {}

            try:
                if event == events.HEARTBEAT:
                    await participants_mgr.heartbeat(room_id, user_id)
                elif event in events.SIGNALING_EVENTS:
                    await _relay(room_id, user_id, event, payload)
                else:
                    logger.debug("room %s: ignoring unknown event %r from %s", room_id, event, user_id)
            except Exception as exc:
                logger.error(
                    "room_ws_handler: error handling %r from user %s: %s",
                    event,
                    user_id,
                    exc,
                    exc_info=True,
                )

    except WebSocketDisconnect:
        pass
    except Exception as exc:
        logger.exception("room_ws_handler: unexpected error: %s", exc)
    finally:
        # Only the registered socket announces; a replaced or evicted one stays quiet.
        if room_manager.disconnect(room_id, user_id, websocket):
            await _announce_departure(room_id, user_id)
