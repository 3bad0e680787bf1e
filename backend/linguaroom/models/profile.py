from sqlalchemy import Column, Date, DateTime, String
from sqlalchemy.sql import func

from linguaroom.database import Base


class Profile(Base):
    """Public profile of a user.  ``id`` is the same opaque user id rooms use."""

    __tablename__ = "profiles"

    id = Column(String(64), primary_key=True)
    full_name = Column(String(100), nullable=True, index=True)
    avatar_url = Column(String(500), nullable=True)
    country = Column(String(100), nullable=True)
    birthday = Column(Date, nullable=True)
    native_language_code = Column(String(10), nullable=True, index=True)
    learning_language_code = Column(String(10), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
