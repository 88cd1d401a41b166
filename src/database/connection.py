"""
Database Connection Module

Provides synchronous engine and session management. The allocation engine
is thread-per-request: every operation opens one session through a unit of
work and closes it when the operation ends.

Usage:
    with get_db_session() as session:
        result = session.execute(query)

    # Schema for SQLite deployments and tests
    init_db(get_sync_engine())
"""

import logging
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool, QueuePool, StaticPool

from config.database import DatabaseSettings, get_database_settings

logger = logging.getLogger(__name__)

# Global sync engine and session factory (lazy initialization)
_sync_engine: Optional[Engine] = None
_sync_session_factory: Optional[sessionmaker] = None


def enable_sqlite_pragmas(engine: Engine) -> None:
    """
    Turn on foreign key enforcement for every new SQLite connection.

    Args:
        engine: Engine to configure.
    """

    @event.listens_for(engine, "connect")
    def on_connect(dbapi_connection, connection_record):
        """Called when a new connection is established."""
        logger.debug("Database connection established")
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_db_engine(settings: Optional[DatabaseSettings] = None) -> Engine:
    """
    Create a synchronous SQLAlchemy engine.

    Args:
        settings: Database settings. If None, loads from environment.

    Returns:
        Engine: Configured engine.
    """
    settings = settings or get_database_settings()

    logger.info(
        "Creating sync database engine",
        extra={
            "driver": settings.driver,
            "database": settings.name if settings.is_postgres else str(settings.sqlite_path),
        }
    )

    # Pool configuration differs for SQLite vs PostgreSQL
    if settings.url == "sqlite://":
        # One shared connection, or every session sees an empty database
        pool_class = StaticPool
        pool_kwargs = {}
    elif settings.is_sqlite:
        pool_class = NullPool
        pool_kwargs = {}
    else:
        pool_class = QueuePool
        pool_kwargs = {
            "pool_size": settings.pool_size,
            "max_overflow": settings.max_overflow,
            "pool_timeout": settings.pool_timeout,
            "pool_recycle": settings.pool_recycle,
            "pool_pre_ping": settings.pool_pre_ping,
        }

    engine = create_engine(
        settings.url,
        echo=settings.echo_sql,
        poolclass=pool_class,
        connect_args=settings.get_connect_args(),
        **pool_kwargs,
    )
    if settings.is_sqlite:
        enable_sqlite_pragmas(engine)
    return engine


def get_sync_engine(settings: Optional[DatabaseSettings] = None) -> Engine:
    """
    Get or create the process-wide synchronous engine.

    Args:
        settings: Database settings. If None, loads from environment.
    """
    global _sync_engine

    if _sync_engine is None:
        _sync_engine = create_db_engine(settings)

    return _sync_engine


def create_session_factory(engine: Engine) -> sessionmaker:
    """
    Build a session factory bound to `engine`.

    Objects stay readable after commit so projections can be built from them.
    """
    return sessionmaker(
        bind=engine,
        expire_on_commit=False,
        autoflush=False,
        autocommit=False,
    )


def get_sync_session_factory(
    settings: Optional[DatabaseSettings] = None
) -> sessionmaker:
    """
    Get or create the sync session factory.

    Args:
        settings: Optional database settings.

    Returns:
        sessionmaker: Factory for creating sync sessions.
    """
    global _sync_session_factory

    if _sync_session_factory is None:
        _sync_session_factory = create_session_factory(get_sync_engine(settings))

    return _sync_session_factory


@contextmanager
def get_db_session(
    settings: Optional[DatabaseSettings] = None
) -> Generator[Session, None, None]:
    """
    Get a synchronous database session as a context manager.

    Usage:
        with get_db_session() as session:
            result = session.execute(query)
            session.add(new_record)

    Args:
        settings: Optional database settings.

    Yields:
        Session: SQLAlchemy session that auto-commits on success, rollbacks on error.
    """
    session_factory = get_sync_session_factory(settings)
    session = session_factory()

    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(engine: Optional[Engine] = None) -> None:
    """
    Create all tables that do not exist yet.

    Args:
        engine: Target engine. Defaults to the process-wide engine.
    """
    from database.models import Base

    engine = engine or get_sync_engine()
    Base.metadata.create_all(engine)
    logger.info("Database schema initialized")


def check_database_connection(engine: Optional[Engine] = None) -> bool:
    """
    Check if the database is accessible.

    Returns:
        bool: True if database is accessible, False otherwise.
    """
    engine = engine or get_sync_engine()
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection check failed: {e}")
        return False


def close_sync_engine() -> None:
    """
    Close the sync database engine and cleanup connections.

    Should be called during application shutdown.
    """
    global _sync_engine, _sync_session_factory

    if _sync_engine is not None:
        logger.info("Closing sync database engine")
        _sync_engine.dispose()
        _sync_engine = None
        _sync_session_factory = None
        logger.info("Sync database engine closed")
