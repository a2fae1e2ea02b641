"""
Database Configuration and Connection Management

Engine creation, session factory and the transactional session scope used
by every repository.

Design Considerations:
- SQLite by default, any SQLAlchemy URL through ``DATABASE_URL``
- Connection pooling for server databases
- One session per repository call, committed or rolled back as a unit
"""

import logging
import os
from contextlib import contextmanager
from typing import Generator

from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from inbox_actions.storage.models import Base

load_dotenv()

logger = logging.getLogger(__name__)

# Database configuration
DB_URL = os.getenv("DATABASE_URL", "sqlite:///data/inbox_actions.db")
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "5"))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "10"))
DB_POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", "30"))
SQL_ECHO = os.getenv("SQL_ECHO", "False").lower() == "true"


def create_database_engine(url: str) -> Engine:
    """
    Build an engine suited to the backend.

    In-memory SQLite shares a single connection so every session sees the
    same database.
    """
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            return create_engine(url, poolclass=StaticPool, connect_args=connect_args, echo=SQL_ECHO)
        return create_engine(url, connect_args=connect_args, echo=SQL_ECHO)

    return create_engine(
        url,
        poolclass=QueuePool,
        pool_size=DB_POOL_SIZE,
        max_overflow=DB_MAX_OVERFLOW,
        pool_timeout=DB_POOL_TIMEOUT,
        pool_pre_ping=True,
        echo=SQL_ECHO,
    )


engine = create_database_engine(DB_URL)

# Create session factory
SessionLocal = sessionmaker(autoflush=False, bind=engine)


def configure_database(url: str) -> Engine:
    """
    Rebind the session factory to another database (tests, CLI tools).

    Returns:
        The new engine
    """
    global engine
    engine = create_database_engine(url)
    SessionLocal.configure(bind=engine)
    return engine


def _ensure_sqlite_directory(url: str) -> None:
    prefix = "sqlite:///"
    if not url.startswith(prefix) or url.endswith(":memory:"):
        return
    directory = os.path.dirname(url[len(prefix):])
    if directory:
        os.makedirs(directory, exist_ok=True)


def init_db() -> None:
    """
    Create all tables that don't exist yet.

    Raises:
        RuntimeError: If the schema cannot be created
    """
    try:
        logger.info("Initializing database schema")
        _ensure_sqlite_directory(str(engine.url))
        Base.metadata.create_all(bind=engine)
        logger.info("Database schema initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {str(e)}")
        raise RuntimeError(f"Failed to initialize database: {str(e)}")


def drop_db() -> None:
    """Drop every table. Test helper."""
    Base.metadata.drop_all(bind=engine)


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """
    Provide a transactional session scope.

    Commits on success, rolls back on any exception, always closes.

    Yields:
        SQLAlchemy session for database operations

    Raises:
        Exception: Re-raises any exception raised inside the scope
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception as e:
        session.rollback()
        logger.error(f"Database session error: {str(e)}")
        raise
    finally:
        session.close()
