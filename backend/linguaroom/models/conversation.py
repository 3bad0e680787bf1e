from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from linguaroom.database import Base


class Conversation(Base):
    """A 1-on-1 direct-message conversation between two users."""

    __tablename__ = "conversations"

    id = Column(Integer, primary_key=True, index=True)
    # Always store the lower user id as participant_1_id to guarantee uniqueness
    participant_1_id = Column(String(64), nullable=False, index=True)
    participant_2_id = Column(String(64), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    # Bumped on every new message; conversation lists sort on it
    updated_at = Column(DateTime(timezone=True), server_default=func.now())

    messages = relationship("DirectMessage", back_populates="conversation", cascade="all, delete-orphan")

    __table_args__ = (UniqueConstraint("participant_1_id", "participant_2_id", name="unique_conversation_pair"),)

    @classmethod
    def get_or_create(cls, db, a: str, b: str) -> "Conversation":
        uid1, uid2 = (a, b) if a < b else (b, a)
        conv = db.query(cls).filter(cls.participant_1_id == uid1, cls.participant_2_id == uid2).first()
        if not conv:
            conv = cls(participant_1_id=uid1, participant_2_id=uid2)
            db.add(conv)
            db.commit()
            db.refresh(conv)
        return conv

    def has_participant(self, user_id: str) -> bool:
        return user_id in (self.participant_1_id, self.participant_2_id)

    def other_participant(self, user_id: str) -> str:
        return self.participant_2_id if self.participant_1_id == user_id else self.participant_1_id
