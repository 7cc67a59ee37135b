"""
Async engine and sessions for the StudyForge record store.

One `DatabaseService` owns one AsyncEngine. Reads go through `get_session()`;
every write goes through `get_transaction()`, which commits when the block
exits normally and rolls back on any exception. Store code never calls
`session.commit()` itself.

SQLite files (and the testing environment) run on NullPool; server databases
get an AsyncAdaptedQueuePool sized by DATABASE_POOL_SIZE and
DATABASE_MAX_OVERFLOW. Retrying a failed write is left to the caller.

>>> database = DatabaseService()
>>> await database.initialize()
>>> async with database.get_transaction() as session:
...     row = await session.get(ProgressionRow, 1)
...     row.total_experience += 100
>>> await database.shutdown()
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from dataclasses import asdict, dataclass
from typing import Any, AsyncIterator, Dict, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import AsyncAdaptedQueuePool, NullPool

from studyforge.core.config.config import Config
from studyforge.core.database.base import Base
from studyforge.core.exceptions import (
    DatabaseInitializationError,
    DatabaseNotInitializedError,
)
from studyforge.core.logging.logger import get_logger
from studyforge.database import models  # noqa: F401  (registers tables on Base.metadata)

logger = get_logger(__name__)


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000.0, 3)


def _engine_options(url: str, echo: bool) -> Dict[str, Any]:
    """Keyword arguments for `create_async_engine` for this URL."""
    if url.startswith("sqlite") or Config.is_testing():
        return {"echo": echo, "poolclass": NullPool}
    return {
        "echo": echo,
        "poolclass": AsyncAdaptedQueuePool,
        "pool_size": Config.DATABASE_POOL_SIZE,
        "max_overflow": Config.DATABASE_MAX_OVERFLOW,
        "pool_pre_ping": True,
    }


@dataclass
class DatabaseMetrics:
    transactions_committed: int = 0
    transactions_rolled_back: int = 0
    health_checks: int = 0
    health_check_failures: int = 0

    def get_summary(self) -> Dict[str, Any]:
        return asdict(self)


class DatabaseService:
    """
    Lifecycle: `initialize()` creates the engine and the schema (idempotent),
    `shutdown()` disposes it (safe to repeat). `health_check()` never raises.
    """

    def __init__(self, database_url: Optional[str] = None, *, echo: Optional[bool] = None) -> None:
        self._database_url = database_url
        self._echo = echo
        self._engine: Optional[AsyncEngine] = None
        self._sessions: Optional[async_sessionmaker[AsyncSession]] = None
        self._lifecycle_lock = asyncio.Lock()
        self.metrics = DatabaseMetrics()

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    async def initialize(self) -> None:
        """Raises DatabaseInitializationError if the URL is unusable or the schema cannot be created."""
        async with self._lifecycle_lock:
            if self._engine is not None:
                return

            url = self._database_url or Config.DATABASE_URL
            if not isinstance(url, str) or not url:
                logger.error("DATABASE_URL is not configured")
                raise DatabaseInitializationError("DATABASE_URL must be a non-empty string")

            echo = Config.DATABASE_ECHO if self._echo is None else self._echo
            options = _engine_options(url, echo)
            scheme = url.split(":", 1)[0]
            logger.info("Initializing DatabaseService", extra={"url_scheme": scheme})

            engine: Optional[AsyncEngine] = None
            try:
                engine = create_async_engine(url, **options)
                async with engine.begin() as conn:
                    await conn.run_sync(Base.metadata.create_all)
            except Exception as exc:
                if engine is not None:
                    await engine.dispose()
                logger.error(
                    "DatabaseService initialization failed",
                    extra={"error": str(exc), "error_type": type(exc).__name__},
                    exc_info=True,
                )
                raise DatabaseInitializationError(f"Database initialization failed: {exc}", exc) from exc

            self._engine = engine
            self._sessions = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
            logger.info(
                "DatabaseService ready",
                extra={"url_scheme": scheme, "pool_class": options["poolclass"].__name__},
            )

    async def shutdown(self) -> None:
        async with self._lifecycle_lock:
            engine, self._engine, self._sessions = self._engine, None, None
            if engine is None:
                return
            await engine.dispose()
            logger.info("DatabaseService shut down", extra=self.metrics.get_summary())

    async def health_check(self) -> bool:
        """True when `SELECT 1` succeeds."""
        self.metrics.health_checks += 1
        if self._engine is None:
            self.metrics.health_check_failures += 1
            logger.warning("Health check on a DatabaseService that is not initialized")
            return False

        started = time.perf_counter()
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            self.metrics.health_check_failures += 1
            logger.warning(
                "Database health check failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
            )
            return False

        logger.debug("Database health check passed", extra={"duration_ms": _elapsed_ms(started)})
        return True

    # ------------------------------------------------------------------ #
    # Sessions
    # ------------------------------------------------------------------ #

    def _session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._sessions is None:
            logger.error("DatabaseService used before initialize()")
            raise DatabaseNotInitializedError()
        return self._sessions

    @asynccontextmanager
    async def get_session(self) -> AsyncIterator[AsyncSession]:
        """Read session; nothing is committed."""
        async with self._session_factory()() as session:
            yield session

    @asynccontextmanager
    async def get_transaction(self) -> AsyncIterator[AsyncSession]:
        """Session that commits on normal exit and rolls back (then re-raises) on error."""
        factory = self._session_factory()
        started = time.perf_counter()

        async with factory() as session:
            try:
                yield session
                await session.commit()
            except Exception as exc:
                await session.rollback()
                self.metrics.transactions_rolled_back += 1
                logger.error(
                    "Transaction rolled back",
                    extra={
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                        "duration_ms": _elapsed_ms(started),
                    },
                    exc_info=True,
                )
                raise

        self.metrics.transactions_committed += 1
        logger.debug("Transaction committed", extra={"duration_ms": _elapsed_ms(started)})
