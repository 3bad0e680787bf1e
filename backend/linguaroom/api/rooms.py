"""
Rooms REST API.

Endpoints:
  POST  /api/rooms                                       → create a room
  GET   /api/rooms                                       → list active rooms
  GET   /api/rooms/{room_id}                             → room detail
  PATCH /api/rooms/{room_id}                             → host edits room settings
  POST  /api/rooms/{room_id}/close                       → host closes the room
  GET   /api/rooms/{room_id}/participants                → who is in the audio mesh
  PATCH /api/rooms/{room_id}/participants/{user_id}      → mute flag / role
  POST  /api/rooms/{room_id}/participants/{user_id}/kick → host removes a participant
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from linguaroom.api.deps import get_active_room, get_room
from linguaroom.core import events
from linguaroom.database import get_db
from linguaroom.models.room import Room
from linguaroom.redis import participants as participants_mgr
from linguaroom.schemas.room import (
    HostAction,
    Participant,
    ParticipantUpdate,
    RoomCreate,
    RoomParticipantsResponse,
    RoomResponse,
    RoomUpdate,
)
from linguaroom.websocket.manager import room_manager
from linguaroom.websocket.room_handler import evict, evict_all

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rooms", tags=["rooms"])


def _to_response(room: Room) -> RoomResponse:
    resp = RoomResponse.model_validate(room)
    resp.participant_count = room_manager.count(room.id)
    return resp


def _require_host(room: Room, user_id: str | None, action: str) -> None:
    if user_id is None or room.host_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"Only the host can {action}")


async def _notify(room_id: int, event: str, payload: dict) -> None:
    await room_manager.broadcast(room_id, {"event": event, "payload": payload})


@router.post("", response_model=RoomResponse, status_code=status.HTTP_201_CREATED)
async def create_room(room_in: RoomCreate, db: Session = Depends(get_db)) -> RoomResponse:
    room = Room(
        name=room_in.name,
        description=room_in.description,
        language_code=room_in.language_code,
        host_id=room_in.host_id,
        max_participants=room_in.max_participants,
    )
    db.add(room)
    db.commit()
    db.refresh(room)
    logger.info("Room %s created by %s (%s)", room.id, room.host_id, room.language_code)
    return _to_response(room)


@router.get("", response_model=list[RoomResponse])
async def list_rooms(
    language: str | None = Query(default=None, max_length=10),
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
) -> list[RoomResponse]:
    """Return active rooms, newest first, optionally for one language."""
    query = db.query(Room).filter(Room.is_active == True)  # noqa: E712
    if language:
        query = query.filter(Room.language_code == language.lower())
    rooms = query.order_by(Room.created_at.desc(), Room.id.desc()).offset(offset).limit(limit).all()
    return [_to_response(r) for r in rooms]


@router.get("/{room_id}", response_model=RoomResponse)
async def get_room_detail(room: Room = Depends(get_room)) -> RoomResponse:
    return _to_response(room)


@router.patch("/{room_id}", response_model=RoomResponse)
async def update_room(
    body: RoomUpdate,
    room: Room = Depends(get_active_room),
    db: Session = Depends(get_db),
) -> RoomResponse:
    _require_host(room, body.user_id, "change room settings")

    changes = body.model_dump(exclude_unset=True, exclude={"user_id"})
    for field, value in changes.items():
        if value is None and field != "description":
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=f"{field} cannot be null")
        setattr(room, field, value)
    if changes:
        db.commit()
        db.refresh(room)
        logger.info("Room %s settings updated: %s", room.id, ", ".join(sorted(changes)))
        await _notify(room.id, events.ROOM_UPDATED, {"room_id": room.id})
    return _to_response(room)


@router.post("/{room_id}/close", response_model=RoomResponse)
async def close_room(
    body: HostAction,
    room: Room = Depends(get_room),
    db: Session = Depends(get_db),
) -> RoomResponse:
    _require_host(room, body.user_id, "close the room")

    if room.is_active:
        room.is_active = False
        db.commit()
        db.refresh(room)
        logger.info("Room %s closed by host %s", room.id, body.user_id)
        await _notify(room.id, events.ROOM_CLOSED, {"room_id": room.id})
        await evict_all(room.id, events.CLOSE_ROOM_NOT_FOUND)
    return _to_response(room)


@router.get("/{room_id}/participants", response_model=RoomParticipantsResponse)
async def get_participants(room: Room = Depends(get_room)) -> RoomParticipantsResponse:
    """Return the users currently attached to the room's audio mesh."""
    user_ids = await participants_mgr.get_room_participants(room.id)
    if not user_ids:
        return RoomParticipantsResponse(room_id=room.id, participants=[])

    states = await participants_mgr.get_bulk_participant_states(user_ids)
    participants = [
        Participant(
            user_id=uid,
            muted=state.get("muted", True) if state else True,
            role=state.get("role", "audience") if state else "audience",
        )
        for uid, state in states.items()
    ]
    return RoomParticipantsResponse(room_id=room.id, participants=participants)


@router.patch("/{room_id}/participants/{user_id}", response_model=Participant)
async def update_participant(
    user_id: str,
    body: ParticipantUpdate,
    room: Room = Depends(get_room),
) -> Participant:
    if user_id not in await participants_mgr.get_room_participants(room.id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Participant not in room")

    changes = {}
    if body.muted is not None:
        changes["muted"] = body.muted
    if body.role is not None:
        _require_host(room, body.actor_id, "change roles")
        if user_id == room.host_id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="The host's role cannot change")
        changes["role"] = body.role

    state = await participants_mgr.update_participant(room.id, user_id, **changes)
    if state is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Room presence unavailable")
    participant = Participant(user_id=user_id, muted=state["muted"], role=state["role"])
    await _notify(room.id, events.PARTICIPANT_UPDATED, participant.model_dump())
    return participant


@router.post("/{room_id}/participants/{user_id}/kick", status_code=status.HTTP_204_NO_CONTENT)
async def kick_participant(
    user_id: str,
    body: HostAction,
    room: Room = Depends(get_room),
) -> None:
    _require_host(room, body.user_id, "remove participants")
    if user_id == room.host_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="The host cannot be removed")

    present = room_manager.is_connected(room.id, user_id) or user_id in await participants_mgr.get_room_participants(
        room.id
    )
    if not present:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Participant not in room")

    logger.info("Room %s: host %s removed %s", room.id, body.user_id, user_id)
    await _notify(room.id, events.PARTICIPANT_KICKED, {"user_id": user_id})
    if not await evict(room.id, user_id, events.CLOSE_KICKED):
        # Presence without a live socket here (stale or another process).
        await participants_mgr.leave_room(room.id, user_id)
