"""Base model configuration."""
from datetime import UTC, datetime
from typing import Generator, Optional

from sqlalchemy import Column, DateTime, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from vocabdrill.config import DatabaseSettings, settings

# Create declarative base class
Base = declarative_base()


def utcnow() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(UTC)


class TimestampMixin:
    """Mixin to add timestamp columns to models."""
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


# Enforce foreign keys on SQLite connections
@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    """Set SQLite pragmas on every new connection."""
    if type(dbapi_connection).__module__.startswith("sqlite3"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_db_engine(database: Optional[DatabaseSettings] = None, **kwargs) -> Engine:
    """Create the SQLAlchemy engine, once per process."""
    database = database or settings.database
    if database.url.startswith("sqlite"):
        connect_args = kwargs.pop("connect_args", {})
        connect_args.setdefault("timeout", 30)
        kwargs["connect_args"] = connect_args
    return create_engine(database.url, echo=database.echo, **kwargs)


def create_session_factory(engine: Engine) -> sessionmaker:
    """Create the session factory handed to the services."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """Get database session, closed when the unit of work ends."""
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


def init_db(engine: Engine) -> None:
    """Initialize database."""
    # Register the models on Base.metadata
    from vocabdrill.models import models  # noqa: F401

    Base.metadata.create_all(bind=engine)  # Create tables if they don't exist
