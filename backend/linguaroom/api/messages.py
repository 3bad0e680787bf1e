"""
Room chat REST API.

Posting a message stores the row and broadcasts ``message.new`` on the room
topic; attached clients re-fetch the list rather than merging the event.
"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from linguaroom.api.deps import get_active_room, get_room
from linguaroom.config import settings
from linguaroom.core import events
from linguaroom.database import get_db
from linguaroom.models.room import Room
from linguaroom.models.room_message import RoomMessage
from linguaroom.schemas.message import RoomMessageCreate, RoomMessageList, RoomMessageResponse
from linguaroom.websocket.manager import room_manager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rooms", tags=["messages"])


@router.get("/{room_id}/messages", response_model=RoomMessageList)
async def list_messages(
    limit: int = Query(default=50, ge=1, le=settings.ROOM_MESSAGE_PAGE_LIMIT),
    offset: int = Query(default=0, ge=0),
    room: Room = Depends(get_room),
    db: Session = Depends(get_db),
) -> RoomMessageList:
    query = db.query(RoomMessage).filter(RoomMessage.room_id == room.id)
    total = query.count()
    messages = (
        query.order_by(RoomMessage.created_at.asc(), RoomMessage.id.asc()).offset(offset).limit(limit).all()
    )
    return RoomMessageList(
        messages=[RoomMessageResponse.model_validate(m) for m in messages],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.post("/{room_id}/messages", response_model=RoomMessageResponse)
async def send_message(
    message_in: RoomMessageCreate,
    room: Room = Depends(get_active_room),
    db: Session = Depends(get_db),
) -> RoomMessageResponse:
    message = RoomMessage(
        room_id=room.id,
        sender_id=message_in.sender_id,
        content=message_in.content,
        message_type=message_in.message_type,
    )
    db.add(message)
    db.commit()
    db.refresh(message)

    await room_manager.broadcast(
        room.id,
        {"event": events.MESSAGE_NEW, "payload": {"id": message.id, "room_id": room.id}},
    )
    return RoomMessageResponse.model_validate(message)
