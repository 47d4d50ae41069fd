"""Engine and session management.

WHY: The CLI, the ingestion step and the HTTP API all open database
sessions against the same URL. One lazily created engine and session
factory keeps connection pooling in a single place.

HOW: get_engine() builds the engine on first use from DATABASE_URL (or
the URL passed to configure_database()). get_db_session() is a context
manager that commits on success and rolls back on error. SQLite
connections get foreign keys switched on so ON DELETE CASCADE works
the same way it does on PostgreSQL.

RULES:
- configure_database() disposes any existing engine before switching URL
- init_db() creates all tables (and PostgreSQL search indexes)
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from lecture_archive.config import DATABASE_URL
from lecture_archive.database.models import Base

_database_url: str = DATABASE_URL
_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:  # noqa: ANN001
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def configure_database(url: str) -> None:
    """Point the module at a different database URL (used by the CLI and tests)."""
    global _database_url, _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _database_url = url
    _engine = None
    _SessionLocal = None


def get_engine() -> Engine:
    """Get or create the SQLAlchemy engine."""
    global _engine
    if _engine is None:
        if _database_url.startswith("sqlite"):
            # The API serves sync endpoints from a thread pool.
            _engine = create_engine(
                _database_url,
                connect_args={"check_same_thread": False},
                echo=False,
            )
            event.listen(_engine, "connect", _enable_sqlite_foreign_keys)
        else:
            _engine = create_engine(
                _database_url,
                pool_size=10,
                max_overflow=20,
                pool_pre_ping=True,
                pool_recycle=3600,
                echo=False,
            )
    return _engine


def get_session_factory() -> sessionmaker:
    """Get or create the session factory."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(
            bind=get_engine(),
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )
    return _SessionLocal


@contextmanager
def get_db_session() -> Iterator[Session]:
    """Context manager for database sessions.

    Commits on success, rolls back on exception.
    """
    session = get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db() -> None:
    """Create all tables that do not exist yet."""
    Base.metadata.create_all(get_engine())
