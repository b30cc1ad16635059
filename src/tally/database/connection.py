"""Database engine and session management."""

import logging
import sqlite3
from collections.abc import Iterator
from functools import lru_cache
from typing import Any

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from src.tally.config import settings

logger = logging.getLogger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    # SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def build_engine(url: str, echo: bool = False, pool_size: int | None = None) -> Engine:
    """
    Create a SQLAlchemy engine for the given database URL.

    Args:
        url: Database connection string
        echo: Log every SQL statement
        pool_size: Connection pool size (ignored for SQLite)

    Returns:
        Configured engine
    """
    kwargs: dict[str, Any] = {"echo": echo}
    if url.startswith("sqlite"):
        # Sessions are opened in a worker thread and used from the event loop
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        # Serverless Postgres hosts drop idle connections
        kwargs["pool_pre_ping"] = True
        if pool_size is not None:
            kwargs["pool_size"] = pool_size

    engine = create_engine(url, **kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    """
    Get the process-wide database engine (singleton pattern).

    The engine owns the connection pool, so it is built once on first use
    and shared by every request until dispose_engine() runs at shutdown.

    Returns:
        Engine bound to settings.database_url

    Example:
        >>> engine = get_engine()
        >>> with engine.connect() as conn:
        ...     conn.execute(text("select 1"))
    """
    logger.info("Creating database engine")
    return build_engine(
        settings.database_url,
        echo=settings.database_echo,
        pool_size=settings.database_pool_size,
    )


@lru_cache(maxsize=1)
def get_session_factory() -> sessionmaker[Session]:
    """Get the session factory bound to the shared engine."""
    return sessionmaker(bind=get_engine(), expire_on_commit=False)


def get_db() -> Iterator[Session]:
    """
    FastAPI dependency yielding a database session for one request.

    Example:
        @router.get("/expenses")
        async def list_expenses(db: Session = Depends(get_db)):
            ...
    """
    session = get_session_factory()()
    try:
        yield session
    finally:
        session.close()


def dispose_engine() -> None:
    """Close all pooled connections. Called once during application shutdown."""
    if get_engine.cache_info().currsize == 0:
        return

    get_engine().dispose()
    get_session_factory.cache_clear()
    get_engine.cache_clear()
    logger.info("Database engine disposed")
