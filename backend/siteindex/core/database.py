"""
Site Index Database Configuration

Async SQLAlchemy engine and session management with:
- Connection pooling driven by settings
- Engine creation retry with exponential backoff
- Pool metrics exported to Prometheus
"""

import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import Request
from prometheus_client import Counter, Histogram
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
import structlog

from .config import Settings

logger = structlog.get_logger()

DB_SESSION_DURATION = Histogram(
    "siteindex_db_session_duration_seconds",
    "Time spent inside a database session",
)
DB_FAILED_CONNECTIONS = Counter(
    "siteindex_db_failed_connections_total",
    "Total number of failed database connection attempts",
)


class DatabaseManager:
    """
    Database connection manager.

    Owns the async engine and session factory. Constructed once at startup
    and stored on the application state.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker] = None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((ConnectionError, OSError)),
        before_sleep=lambda retry_state: logger.warning(
            "Database connection retry",
            attempt=retry_state.attempt_number,
            wait_time=retry_state.next_action.sleep,
        ),
        reraise=True,
    )
    async def _connect_with_retry(self, engine: AsyncEngine) -> None:
        """Ping the database until it answers or retries are exhausted."""
        try:
            async with engine.connect() as conn:
                result = await conn.execute(text("SELECT 1"))
                if result.scalar() != 1:
                    raise RuntimeError("Database ping returned unexpected result")
        except Exception:
            DB_FAILED_CONNECTIONS.inc()
            raise

    async def initialize(self) -> None:
        """Create the engine and session factory and verify connectivity."""
        if self.engine is not None:
            return

        start_time = time.time()
        engine = create_async_engine(
            self.settings.async_database_url,
            pool_size=self.settings.DATABASE_POOL_SIZE,
            max_overflow=self.settings.DATABASE_MAX_OVERFLOW,
            pool_timeout=self.settings.DATABASE_POOL_TIMEOUT,
            pool_recycle=self.settings.DATABASE_POOL_RECYCLE,
            pool_pre_ping=True,
            echo=self.settings.DEBUG,
        )

        try:
            await self._connect_with_retry(engine)
        except Exception as e:
            await engine.dispose()
            logger.error(
                "Database initialization failed",
                error=str(e),
                exc_info=True,
            )
            raise

        self.engine = engine
        self.session_factory = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

        logger.info(
            "Database initialized",
            duration_seconds=round(time.time() - start_time, 3),
            pool_size=self.settings.DATABASE_POOL_SIZE,
            max_overflow=self.settings.DATABASE_MAX_OVERFLOW,
        )

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Get a database session.

        Commits on normal exit and rolls back on error. Services that need
        the write acknowledged before doing further work commit explicitly.
        """
        if not self.session_factory:
            raise RuntimeError("Database not initialized. Call initialize() first.")

        start_time = time.time()
        try:
            async with self.session_factory() as session:
                try:
                    yield session
                    await session.commit()
                except Exception as e:
                    await session.rollback()
                    logger.error(
                        "Database transaction failed",
                        error=str(e),
                        exc_info=True,
                    )
                    raise
        finally:
            DB_SESSION_DURATION.observe(time.time() - start_time)

    async def health_check(self) -> Dict[str, Any]:
        """Run a trivial query and report pool state."""
        if not self.engine:
            return {"status": "not_initialized"}

        start_time = time.time()
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            pool = self.engine.pool
            return {
                "status": "healthy",
                "duration_seconds": round(time.time() - start_time, 4),
                "pool": {
                    "size": pool.size(),
                    "checked_in": pool.checkedin(),
                    "checked_out": pool.checkedout(),
                    "overflow": pool.overflow(),
                },
            }
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return {"status": "unhealthy", "error": str(e)}

    async def close(self) -> None:
        """Dispose the engine."""
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self.session_factory = None
            logger.info("Database connections closed")


async def get_database_session(
    request: Request,
) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a session from the application's manager."""
    database: DatabaseManager = request.app.state.database
    async with database.get_session() as session:
        yield session
