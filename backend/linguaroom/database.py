"""SQLAlchemy engine and sessions."""

import logging
from collections.abc import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from linguaroom.config import settings

logger = logging.getLogger(__name__)


_is_sqlite = settings.DATABASE_URL.startswith("sqlite")

if _is_sqlite:
    engine = create_engine(settings.DATABASE_URL, connect_args={"check_same_thread": False})

    @event.listens_for(engine, "connect")
    def _sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
        # Deleting a room must cascade to its messages.
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

else:
    engine = create_engine(
        settings.DATABASE_URL,
        pool_pre_ping=True,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
    )

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    pass


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Create missing tables on a local SQLite file and load the language list.

    Other databases are migrated with Alembic (``backend/alembic/versions``).
    """
    if not _is_sqlite:
        return
    from linguaroom.models import conversation, direct_message, follow, profile, room, room_message  # noqa: F401
    from linguaroom.models.language import seed_languages

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_languages(db)
    finally:
        db.close()
    logger.info("SQLite schema ready at %s", settings.DATABASE_URL)
