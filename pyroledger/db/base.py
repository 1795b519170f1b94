"""
Database base configuration and utilities for the SQL-backed ledger stores
"""

import logging
import os
import threading
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

# Create declarative base
Base = declarative_base()

logger = logging.getLogger(__name__)

# Process-wide engine and session factory
_lock = threading.Lock()
_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None


def get_database_url() -> str:
    """
    Get database URL from environment

    Returns:
        Database connection URL
    """
    db_url = os.getenv("PYROLEDGER_DATABASE_URL")

    if db_url:
        return db_url

    # Default to SQLite for development
    db_path = os.getenv("PYROLEDGER_DB_PATH", "~/.pyroledger/ledger.db")
    db_path = os.path.expanduser(db_path)

    os.makedirs(os.path.dirname(db_path), exist_ok=True)

    return f"sqlite:///{db_path}"


def build_engine(url: str, **kwargs) -> Engine:
    """
    Create a SQLAlchemy engine for a URL

    Args:
        url: Database URL
        **kwargs: Pool and echo settings

    Returns:
        SQLAlchemy Engine
    """
    engine_config = {
        "poolclass": QueuePool,
        "pool_size": kwargs.get("pool_size", 5),
        "max_overflow": kwargs.get("max_overflow", 10),
        "pool_timeout": kwargs.get("pool_timeout", 30),
        "pool_recycle": kwargs.get("pool_recycle", 3600),
        "echo": kwargs.get("echo", False),
    }

    if url.startswith("sqlite"):
        engine_config = {
            "connect_args": {"check_same_thread": False},
            "echo": kwargs.get("echo", False),
        }
        # In-memory databases live in a single shared connection
        if url in ("sqlite://", "sqlite:///:memory:"):
            engine_config["poolclass"] = StaticPool

    engine = create_engine(url, **engine_config)

    if url.startswith("sqlite"):
        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_conn, connection_record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def build_session_factory(engine: Engine) -> sessionmaker:
    """Session factory for the ledger stores, bound to ``engine``."""
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def get_engine() -> Engine:
    """
    Process-wide engine for ``get_database_url()``, created on first use

    Returns:
        SQLAlchemy Engine
    """
    global _engine

    with _lock:
        if _engine is None:
            _engine = build_engine(get_database_url())
            init_db(_engine)
            logger.info("Ledger database engine created for %s", _engine.url)
        return _engine


def get_session_factory() -> sessionmaker:
    """Session factory bound to the process-wide engine."""
    global _SessionLocal

    engine = get_engine()
    with _lock:
        if _SessionLocal is None:
            _SessionLocal = build_session_factory(engine)
        return _SessionLocal


@contextmanager
def session_scope(factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Transactional session context manager

    Args:
        factory: Session factory

    Yields:
        Database session, committed on success and rolled back on error
    """
    session = factory()

    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(engine: Engine) -> None:
    """
    Create the ledger tables that do not exist yet

    Args:
        engine: SQLAlchemy engine
    """
    # Register the ledger tables on Base.metadata
    from pyroledger.db import models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def reset_engine() -> None:
    """Dispose of the process-wide engine and forget its session factory."""
    global _engine, _SessionLocal

    with _lock:
        if _engine is not None:
            _engine.dispose()
            _engine = None
        _SessionLocal = None
