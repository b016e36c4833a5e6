"""Async SQLAlchemy engine, session factory, and declarative base."""

import logging
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import event, func
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from booka.config import settings

logger = logging.getLogger(__name__)


def _install_sqlite_hooks(engine: AsyncEngine) -> None:
    """Make SQLite behave like a locking database for the booking transaction.

    pysqlite's own transaction handling is switched off and every transaction
    is opened with ``BEGIN IMMEDIATE``, which takes the database write lock up
    front. Writers are therefore serialized and SAVEPOINTs work as expected.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):  # noqa: ARG001
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(url: str, **kwargs: Any) -> AsyncEngine:
    """Create an async engine for ``url`` with dialect-appropriate settings."""
    is_sqlite = make_url(url).get_backend_name() == "sqlite"
    options: dict[str, Any] = {"echo": settings.debug, "pool_pre_ping": True}
    if is_sqlite:
        # Seconds a connection waits on the write lock before "database is locked"
        options["connect_args"] = {"timeout": 30}
    else:
        options.update(pool_size=10, max_overflow=20)
    options.update(kwargs)

    engine = create_async_engine(url, **options)
    if is_sqlite:
        _install_sqlite_hooks(engine)
    logger.debug("Created %s engine", engine.dialect.name)
    return engine


engine = build_engine(settings.async_database_url)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class TimestampMixin:
    """Mixin that adds created_at and updated_at columns."""

    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        onupdate=func.now(),
    )


class UUIDPrimaryKeyMixin:
    """Mixin that adds a UUID primary key column."""

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async database session for FastAPI dependency injection.

    Services that need a commit boundary of their own (bookings) commit
    inside the request; anything left pending is committed here.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
