from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.orm import Session
from sqlalchemy.sql import func

from linguaroom.database import Base

# (code, name, flag) rows loaded into an empty languages table
DEFAULT_LANGUAGES = (
    ("ar", "Arabic", "🇸🇦"),
    ("de", "German", "🇩🇪"),
    ("en", "English", "🇬🇧"),
    ("es", "Spanish", "🇪🇸"),
    ("fr", "French", "🇫🇷"),
    ("hi", "Hindi", "🇮🇳"),
    ("it", "Italian", "🇮🇹"),
    ("ja", "Japanese", "🇯🇵"),
    ("ko", "Korean", "🇰🇷"),
    ("nl", "Dutch", "🇳🇱"),
    ("pl", "Polish", "🇵🇱"),
    ("pt", "Portuguese", "🇵🇹"),
    ("ru", "Russian", "🇷🇺"),
    ("sv", "Swedish", "🇸🇪"),
    ("tr", "Turkish", "🇹🇷"),
    ("uk", "Ukrainian", "🇺🇦"),
    ("zh", "Chinese", "🇨🇳"),
)


class Language(Base):
    __tablename__ = "languages"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(10), unique=True, nullable=False, index=True)
    name = Column(String(50), nullable=False)
    flag_emoji = Column(String(16), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


def seed_languages(db: Session) -> int:
    """Insert any of DEFAULT_LANGUAGES not present yet; returns how many were added."""
    existing = {code for (code,) in db.query(Language.code).all()}
    added = 0
    for code, name, flag in DEFAULT_LANGUAGES:
        if code in existing:
            continue
        db.add(Language(code=code, name=name, flag_emoji=flag))
        added += 1
    if added:
        db.commit()
    return added
