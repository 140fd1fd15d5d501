"""
Database Package Initialization.

============================================================
KEEN DATABASE LAYER
============================================================

Async PostgreSQL access for the keen platform:
configuration, engine and pool management, the users
model and repository, and the DatabaseService that the
lifecycle orchestrator drives.

============================================================
"""

# Configuration
from .config import (
    DatabaseConfig,
    AdminConfig,
    load_database_config,
    load_admin_config,
)

# Core engine and pool management
from .engine import (
    Base,
    REQUIRED_TABLES,
    DatabaseManager,
)

# ORM models
from .models import User

# Repositories
from .users import UserRepository

# Health types and service contract
from .types import (
    PoolStats,
    HealthStatus,
    UserLookupProtocol,
    DatabaseServiceProtocol,
)

# Service
from .service import DatabaseService


__all__ = [
    "DatabaseConfig",
    "AdminConfig",
    "load_database_config",
    "load_admin_config",
    "Base",
    "REQUIRED_TABLES",
    "DatabaseManager",
    "User",
    "UserRepository",
    "PoolStats",
    "HealthStatus",
    "UserLookupProtocol",
    "DatabaseServiceProtocol",
    "DatabaseService",
]
