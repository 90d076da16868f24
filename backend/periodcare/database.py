"""
PeriodCare Backend - Database Connection Handle
=================================================

What:  Owns the async SQLAlchemy engine and session factory for the process.
Why:   The bootstrap sequencer must prove the database is reachable before
       the listener starts; feature routers then share one pooled engine.
How:   Database(settings) builds the engine without connecting; connect()
       runs `SELECT 1` and wraps any failure in DatabaseConnectionError;
       dispose() closes the pool on shutdown.
Who:   Created by the bootstrap sequencer, stored on `app.state.database`,
       reached by route handlers through the get_db_session dependency.

Connection Pooling:
    pool_size / max_overflow come from settings. SQLite URLs (used by the
    test-suite through aiosqlite) get SQLAlchemy's default pool instead,
    since SQLite pools do not accept sizing arguments.
"""

import asyncio
import logging
from typing import Any, AsyncGenerator, Dict

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError, InvalidRequestError, NoSuchModuleError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from periodcare.config import Settings
from periodcare.exceptions import ConfigurationError, DatabaseConnectionError

logger = logging.getLogger(__name__)


class Database:
    def __init__(self, settings: Settings):
        """
        Raises:
            ConfigurationError: DATABASE_URL does not parse, names an unknown
                dialect, or needs a driver that is not installed (or is not
                an async driver).
        """
        try:
            self.url = make_url(settings.database_url)
            self.engine: AsyncEngine = create_async_engine(self.url, **self._engine_kwargs(settings))
        except (NoSuchModuleError, InvalidRequestError, ImportError) as e:
            # NoSuchModuleError is an ArgumentError subclass, so it is caught first
            raise ConfigurationError(
                message=f"Invalid DATABASE_URL: {e}",
                context={"error_type": type(e).__name__},
            ) from e
        except ArgumentError as e:
            # The parse error quotes the whole URL, password included
            raise ConfigurationError(message="Invalid DATABASE_URL: could not parse URL") from e
        self.connect_timeout = settings.db_connect_timeout
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    def _engine_kwargs(self, settings: Settings) -> Dict[str, Any]:
        engine_kwargs: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
        if self.url.get_backend_name() != "sqlite":
            engine_kwargs.update(
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_pre_ping=settings.db_pool_pre_ping,
                pool_recycle=3600,
            )
        return engine_kwargs

    async def connect(self) -> None:
        """
        What:  Open one connection and run a trivial query.
        When:  Once, during bootstrap, before the listener starts.
        Raises: DatabaseConnectionError with the driver error in context.
        """
        # Never log the password embedded in the URL
        safe_url = self.url.render_as_string(hide_password=True)
        try:
            async with asyncio.timeout(self.connect_timeout):
                async with self.engine.connect() as conn:
                    await conn.execute(text("SELECT 1"))
        except Exception as e:
            raise DatabaseConnectionError(
                message=f"Could not connect to database at {safe_url}: {e}",
                context={"url": safe_url, "error_type": type(e).__name__},
            ) from e
        logger.info("Database connected: %s", safe_url)

    async def dispose(self) -> None:
        """Close all pooled connections (application shutdown)."""
        await self.engine.dispose()


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency: one session per request, committed on success and
    rolled back if the handler raises.
    """
    database: Database = request.app.state.database
    async with database.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
