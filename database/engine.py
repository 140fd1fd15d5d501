"""
Database - Core Engine.

============================================================
ASYNC POSTGRESQL CONNECTION MANAGEMENT
============================================================

Owns the SQLAlchemy async engine and its connection pool.

- Lazy engine creation with pool sizing from DatabaseConfig
- Explicit transaction scopes (commit or rollback)
- Connectivity check and health snapshot with pool stats
- Table creation and verification
- Idempotent close

Requirements:
- SQLAlchemy asyncio extension over asyncpg
- Structured logging
- Hard failures on initialization errors

============================================================
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable, List, Optional

from sqlalchemy import event, inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from core.exceptions import DatabaseInitializationError
from .config import DatabaseConfig, load_database_config
from .types import HealthStatus, PoolStats

logger = logging.getLogger(__name__)

# =============================================================
# DECLARATIVE BASE
# =============================================================

Base = declarative_base()

REQUIRED_TABLES = [
    "users",
]


# =============================================================
# DATABASE MANAGER
# =============================================================

class DatabaseManager:
    """
    Connection and pool management for one database.

    Nothing is opened until the first query; close() is safe to
    call whether or not the engine was ever created.
    """

    def __init__(self, config: Optional[DatabaseConfig] = None):
        self._config = config or load_database_config()
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker] = None

    @property
    def config(self) -> DatabaseConfig:
        return self._config

    @property
    def is_open(self) -> bool:
        """True once an engine exists and has not been disposed."""
        return self._engine is not None

    # --------------------------------------------------------
    # ENGINE & SESSIONS
    # --------------------------------------------------------

    def get_engine(self) -> AsyncEngine:
        """Get the async engine, creating it if necessary."""
        if self._engine is not None:
            return self._engine

        config = self._config
        logger.info(f"Creating database engine for: {config.safe_url}")

        connect_args = {"timeout": config.connect_timeout_seconds}
        if config.ssl:
            connect_args["ssl"] = "require"

        self._engine = create_async_engine(
            config.url,
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
            pool_timeout=config.pool_timeout_seconds,
            pool_recycle=config.pool_recycle_seconds,
            pool_pre_ping=True,
            echo=config.echo,
            connect_args=connect_args,
        )

        @event.listens_for(self._engine.sync_engine, "connect")
        def on_connect(dbapi_conn, connection_record):
            logger.debug("Database pool connected")

        @event.listens_for(self._engine.sync_engine, "close")
        def on_close(dbapi_conn, connection_record):
            logger.debug("Database connection removed from pool")

        return self._engine

    def get_session_factory(self) -> async_sessionmaker:
        """Get session factory, creating if necessary."""
        if self._session_factory is None:
            self._session_factory = async_sessionmaker(
                bind=self.get_engine(),
                autoflush=False,
                expire_on_commit=False,
            )
        return self._session_factory

    @asynccontextmanager
    async def session_scope(self) -> AsyncIterator[AsyncSession]:
        """
        Transaction boundary.

        Commits only if no exception occurs; rolls back and
        re-raises on any exception.

        Usage:
            async with manager.session_scope() as session:
                session.add(user)
        """
        session = self.get_session_factory()()
        try:
            yield session
            await session.commit()
        except Exception as e:
            logger.error(f"Database transaction failed, rolling back: {e}")
            await session.rollback()
            raise
        finally:
            await session.close()

    # --------------------------------------------------------
    # CONNECTIVITY & HEALTH
    # --------------------------------------------------------

    async def test_connection(self) -> bool:
        """
        Check that the database answers a query.

        Returns:
            True if a round trip succeeded, False otherwise.
        """
        try:
            async with self.get_engine().connect() as conn:
                result = await conn.execute(text("SELECT version() AS version"))
                version = result.scalar()
            logger.info(f"Database connected: {version}")
            return True
        except (SQLAlchemyError, OSError, asyncio.TimeoutError) as e:
            logger.error(f"Database connection test failed: {e}")
            return False

    def get_pool_stats(self) -> PoolStats:
        """Current pool occupancy; zeros when no engine exists."""
        if self._engine is None:
            return PoolStats()

        pool = self._engine.pool
        idle = pool.checkedin() if hasattr(pool, "checkedin") else 0
        in_use = pool.checkedout() if hasattr(pool, "checkedout") else 0
        overflow = pool.overflow() if hasattr(pool, "overflow") else 0

        return PoolStats(
            total_count=idle + in_use,
            idle_count=idle,
            overflow_count=max(overflow, 0),
        )

    async def health_check(self) -> HealthStatus:
        """Fresh health snapshot: connectivity, latency and pool stats."""
        start = time.perf_counter()
        connected = await self.test_connection()
        latency = (time.perf_counter() - start) * 1000 if connected else None

        return HealthStatus(
            connected=connected,
            latency=round(latency, 2) if latency is not None else None,
            pool_stats=self.get_pool_stats(),
        )

    # --------------------------------------------------------
    # SCHEMA
    # --------------------------------------------------------

    async def create_all_tables(self) -> None:
        """
        Create all tables registered on Base.

        Raises:
            DatabaseInitializationError if table creation fails
        """
        # Register models with Base
        from . import models  # noqa: F401

        try:
            logger.info("Creating database tables...")
            async with self.get_engine().begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("Database tables created successfully")
        except SQLAlchemyError as e:
            logger.error(f"Failed to create database tables: {e}")
            raise DatabaseInitializationError(
                f"Table creation failed: {e}",
                operation="create_all",
                cause=e,
            ) from e

    async def get_table_names(self) -> List[str]:
        async with self.get_engine().connect() as conn:
            return await conn.run_sync(
                lambda sync_conn: inspect(sync_conn).get_table_names()
            )

    async def verify_required_tables(
        self,
        required: Iterable[str] = REQUIRED_TABLES,
    ) -> None:
        """
        Verify all required tables exist.

        Raises:
            DatabaseInitializationError naming the first missing table
        """
        try:
            existing = set(await self.get_table_names())
        except SQLAlchemyError as e:
            logger.error(f"Failed to inspect database tables: {e}")
            raise DatabaseInitializationError(
                f"Table verification failed: {e}",
                operation="verify_tables",
                cause=e,
            ) from e

        for table in required:
            if table in existing:
                logger.info(f"  [OK] Table verified: {table}")
            else:
                logger.error(f"  [!!] Table missing: {table}")
                raise DatabaseInitializationError(
                    f"Required table missing: {table}",
                    operation="verify_tables",
                    table=table,
                )

    # --------------------------------------------------------
    # SHUTDOWN
    # --------------------------------------------------------

    async def close(self) -> None:
        """Dispose the engine and its pool. Safe when never opened."""
        if self._engine is None:
            logger.debug("Database pool was never opened; nothing to close")
            return

        engine = self._engine
        self._engine = None
        self._session_factory = None
        await engine.dispose()
        logger.info("Database pool closed")


__all__ = [
    "Base",
    "REQUIRED_TABLES",
    "DatabaseManager",
]
