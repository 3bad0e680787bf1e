from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from linguaroom.database import get_db
from linguaroom.models.room import Room


def get_room(room_id: int, db: Session = Depends(get_db)) -> Room:
    """Load a room by id or raise 404.  Closed rooms are still returned."""
    room = db.query(Room).filter(Room.id == room_id).first()
    if not room:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found")
    return room


def get_active_room(room: Room = Depends(get_room)) -> Room:
    """Like get_room, but a closed room is a 409."""
    if not room.is_active:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Room is closed")
    return room
