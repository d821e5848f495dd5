"""
Engine, sessions and schema management for the logbook database.

SQLite is the default for local runs and tests; PostgreSQL works unchanged
because every upsert goes through upsert() below.
"""

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import DeclarativeBase, sessionmaker, Session

from logbook.config import config


class Base(DeclarativeBase):
    """Declarative base shared by every logbook table."""
    pass


def utcnow() -> datetime:
    """
    Current UTC time as a naive datetime.

    All DateTime columns store naive UTC so values compare cleanly on
    SQLite, which drops tzinfo on the way back out.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


engine_kwargs = {
    'echo': config.debug,  # Log SQL in debug mode
}

if config.database.is_sqlite:
    engine_kwargs['connect_args'] = {'check_same_thread': False}

engine = create_engine(config.database.url, **engine_kwargs)


if config.database.is_sqlite:
    @event.listens_for(engine, 'connect')
    def set_sqlite_pragma(dbapi_connection, connection_record):
        """
        Configure SQLite for concurrent ingestion.

        WAL mode allows reads while telemetry is being appended, and
        foreign keys are needed for telemetry -> flight integrity.
        """
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA journal_mode=WAL')
        cursor.execute('PRAGMA synchronous=NORMAL')
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.close()


# Session factory
SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,  # Avoid lazy loading issues
)


def upsert(table):
    """
    INSERT statement supporting ON CONFLICT for the configured dialect.

    Both the SQLite and PostgreSQL dialects expose on_conflict_do_update
    with the same signature.
    """
    if config.database.is_sqlite:
        return sqlite.insert(table)
    return postgresql.insert(table)


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """
    Transactional session scope.

    Usage:
        with get_session() as session:
            session.execute(...)

    Commits on success, rolls back on any exception, always closes.
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db() -> None:
    """
    Create any missing logbook tables.

    Existing tables are left untouched; schema changes need a migration.
    """
    # Register every mapped class on Base.metadata before create_all
    import logbook.models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def drop_db() -> None:
    """Drop all logbook tables. Used by the test suite."""
    import logbook.models  # noqa: F401

    Base.metadata.drop_all(bind=engine)
