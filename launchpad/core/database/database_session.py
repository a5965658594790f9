"""
Database session management.

A lazily created module-level engine and a thread-scoped session registry, so
every thread (including the workflow's request threads) gets its own session.
"""

import logging
import os
from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DisconnectionError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, scoped_session, sessionmaker

from launchpad.core.database.db_config import DatabaseConfig

logger = logging.getLogger(__name__)

# Module-level globals for lazy initialization
_engine: Engine | None = None
_session_factory = None
_scoped_session = None


def get_engine() -> Engine:
    """Get or create the database engine (lazy initialization)."""
    global _engine, _session_factory, _scoped_session

    if _engine is None:
        connection_string = DatabaseConfig.get_connection_string()

        if connection_string.startswith("sqlite"):
            # Sessions are used from more than one thread
            _engine = create_engine(connection_string, connect_args={"check_same_thread": False}, echo=False)
        else:
            query_timeout = int(os.environ.get("DATABASE_QUERY_TIMEOUT", "30"))
            connect_timeout = int(os.environ.get("DATABASE_CONNECT_TIMEOUT", "10"))
            pool_timeout = int(os.environ.get("DATABASE_POOL_TIMEOUT", "30"))

            _engine = create_engine(
                connection_string,
                pool_size=10,
                max_overflow=20,
                pool_timeout=pool_timeout,
                pool_recycle=3600,
                pool_pre_ping=True,
                echo=False,
                connect_args={"connect_timeout": connect_timeout},
            )

            @event.listens_for(_engine, "connect")
            def set_statement_timeout(dbapi_conn, connection_record):
                """Set statement_timeout on new connections."""
                cursor = dbapi_conn.cursor()
                cursor.execute(f"SET statement_timeout = '{query_timeout * 1000}'")
                cursor.close()

        _session_factory = sessionmaker(bind=_engine, expire_on_commit=False)
        _scoped_session = scoped_session(_session_factory)

    return _engine


def reset_engine():
    """Reset engine for testing - closes existing connections and clears global state."""
    global _engine, _session_factory, _scoped_session

    if _scoped_session is not None:
        _scoped_session.remove()
        _scoped_session = None

    if _engine is not None:
        _engine.dispose()
        _engine = None

    _session_factory = None


def get_scoped_session():
    """Get the scoped session factory (lazy initialization)."""
    get_engine()
    return _scoped_session


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """
    Context manager for database sessions with automatic cleanup.

    Usage:
        with get_db_session() as session:
            session.add(obj)
            session.commit()  # Explicit commit needed

    Anything not committed is rolled back when the block exits.
    """
    scoped = get_scoped_session()
    session = scoped()
    try:
        yield session
    except (OperationalError, DisconnectionError) as e:
        logger.error(f"Database connection error: {e}")
        session.rollback()
        scoped.remove()
        raise
    except SQLAlchemyError as e:
        logger.error(f"Database error: {e}")
        session.rollback()
        raise
    finally:
        session.close()
        scoped.remove()
