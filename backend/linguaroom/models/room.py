from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from linguaroom.database import Base


class Room(Base):
    __tablename__ = "rooms"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)
    # ISO-639 style code of the practised language, stored lowercase
    language_code = Column(String(10), nullable=False, index=True)
    host_id = Column(String(64), nullable=False)
    max_participants = Column(Integer, nullable=False, default=10)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    messages = relationship("RoomMessage", back_populates="room", cascade="all, delete-orphan")
