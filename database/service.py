"""
Database Service.

============================================================
PURPOSE
============================================================
High-level service combining the database manager and the
repositories. This is the collaborator the lifecycle
orchestrator drives.

============================================================
DESIGN
============================================================
A thin wrapper around DatabaseManager providing:
- Connectivity check
- Schema initialization (create + verify tables)
- User lookups
- Health snapshot
- Connection pool disposal

Migrations, seed data and the admin privilege model are
owned by separate tooling; initialize() only guarantees the
tables this layer reads exist.

============================================================
"""

import logging
from typing import Optional

from core.exceptions import DatabaseInitializationError
from .config import DatabaseConfig
from .engine import DatabaseManager
from .types import HealthStatus
from .users import UserRepository


logger = logging.getLogger("database.service")


class DatabaseService:
    """
    Database service for one process.

    Create one per process and pass it to whoever needs it;
    there is no module-level instance.
    """

    def __init__(
        self,
        config: Optional[DatabaseConfig] = None,
        manager: Optional[DatabaseManager] = None,
    ) -> None:
        """
        Args:
            config: Connection configuration (default: from environment)
            manager: Pre-built manager, mainly for tests
        """
        self._db = manager or DatabaseManager(config)
        self.users = UserRepository(self._db)

    async def initialize(self) -> None:
        """
        Prepare the schema.

        Raises:
            DatabaseInitializationError if tables cannot be created
            or verified
        """
        logger.info("Initializing keen database...")

        try:
            await self._db.create_all_tables()
            await self._db.verify_required_tables()
        except DatabaseInitializationError as e:
            logger.error(f"Database initialization failed: {e}")
            raise

        logger.info("keen database initialized successfully")

    async def test_connection(self) -> bool:
        """Test database connectivity."""
        return await self._db.test_connection()

    def get_database_manager(self) -> DatabaseManager:
        return self._db

    async def get_health_status(self) -> HealthStatus:
        """Get database health status."""
        return await self._db.health_check()

    async def close(self) -> None:
        """Close all database connections."""
        await self._db.close()


__all__ = [
    "DatabaseService",
]
