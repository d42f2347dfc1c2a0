"""Database configuration and helper utilities.

This module configures the asynchronous SQLAlchemy engine and provides
the session dependency used by the API routes and the background
tickers.  SQLite is the default store; any async SQLAlchemy URL can be
supplied through ``DATABASE_URL``.
"""

import os
import logging
from sqlmodel import SQLModel
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    create_async_engine,
    AsyncSession,
    async_sessionmaker,
)

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv(
    "DATABASE_URL", "sqlite+aiosqlite:///./family_bank.db"
)


# Control SQL echo via environment variable and route output through logging
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() == "true"
if SQL_ECHO:
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)


def enable_sqlite_foreign_keys(engine: AsyncEngine) -> AsyncEngine:
    """Turn on ``ON DELETE CASCADE`` enforcement for every SQLite connection."""

    if engine.dialect.name != "sqlite":
        return engine

    @event.listens_for(engine.sync_engine, "connect")
    def _set_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


engine = enable_sqlite_foreign_keys(create_async_engine(DATABASE_URL, echo=SQL_ECHO))

async_session = async_sessionmaker(engine, expire_on_commit=False)


async def create_db_and_tables(bind: AsyncEngine | None = None) -> None:
    """Create any missing tables for the registered models."""

    from . import models  # noqa: F401  registers the tables on the metadata

    async with (bind or engine).begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("Database schema ready")


async def get_session() -> AsyncSession:
    async with async_session() as session:
        yield session
