"""
Database - Configuration.

============================================================
PURPOSE
============================================================
Environment-driven configuration for the database layer.

- Connection and pool settings for PostgreSQL
- The designated administrator account

Values are read once at process start; the dataclasses are
frozen so nothing mutates them afterwards.

============================================================
"""

import os
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote_plus

from core.exceptions import MissingConfigError, ConfigurationError


# ============================================================
# ENVIRONMENT HELPERS
# ============================================================

def get_env_var(key: str, default: Optional[str] = None) -> str:
    """Read a string variable; raise if it is unset and has no default."""
    value = os.getenv(key) or default
    if not value:
        raise MissingConfigError(key)
    return value


def get_env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if not value:
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ConfigurationError(
            f"Invalid integer for {key}: {value!r}",
            config_key=key,
            cause=e,
        ) from e


def get_env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    return value.lower() == "true" if value else default


# ============================================================
# DATABASE CONFIGURATION
# ============================================================

# DATABASE_URL schemes rewritten to the asyncpg driver
SYNC_POSTGRES_SCHEMES = (
    "postgres",
    "postgresql",
    "postgresql+psycopg2",
    "postgresql+psycopg",
)


@dataclass(frozen=True)
class DatabaseConfig:
    """
    PostgreSQL connection configuration.
    """

    password: str
    """Database password (DB_PASSWORD, required)."""

    host: str = "localhost"
    """Database host."""

    port: int = 5432
    """Database port."""

    database: str = "keen_development"
    """Database name."""

    user: str = "keen_user"
    """Database role."""

    ssl: bool = False
    """Require TLS for connections."""

    pool_size: int = 20
    """Connections kept in the pool."""

    max_overflow: int = 0
    """Connections allowed beyond pool_size."""

    pool_timeout_seconds: float = 30.0
    """Seconds to wait for a free pooled connection."""

    pool_recycle_seconds: float = 30.0
    """
    Recycle pooled connections older than this many seconds.

    Loaded from DB_IDLE_TIMEOUT, given in milliseconds. Connections
    are replaced by age on checkout; idle ones are not closed early.
    """

    connect_timeout_seconds: float = 10.0
    """Seconds to wait when opening a new connection."""

    echo: bool = False
    """Log SQL statements."""

    url_override: Optional[str] = None
    """Full DATABASE_URL; sync PostgreSQL schemes are switched to asyncpg."""

    @property
    def url(self) -> str:
        """SQLAlchemy URL using the asyncpg driver."""
        if self.url_override:
            url = self.url_override
            scheme, sep, rest = url.partition("://")
            if sep and scheme in SYNC_POSTGRES_SCHEMES:
                url = f"postgresql+asyncpg://{rest}"
            return url
        return (
            f"postgresql+asyncpg://{quote_plus(self.user)}:{quote_plus(self.password)}"
            f"@{self.host}:{self.port}/{self.database}"
        )

    @property
    def safe_url(self) -> str:
        """URL without credentials, for logs."""
        return self.url.split("@")[-1]

    @classmethod
    def from_env(cls) -> "DatabaseConfig":
        """Load configuration from environment variables."""
        url_override = os.getenv("DATABASE_URL")
        return cls(
            password="" if url_override else get_env_var("DB_PASSWORD"),
            host=get_env_var("DB_HOST", "localhost"),
            port=get_env_int("DB_PORT", 5432),
            database=get_env_var("DB_NAME", "keen_development"),
            user=get_env_var("DB_USER", "keen_user"),
            ssl=get_env_bool("DB_SSL", False),
            pool_size=get_env_int("DB_MAX_CONNECTIONS", 20),
            max_overflow=get_env_int("DB_MAX_OVERFLOW", 0),
            pool_recycle_seconds=get_env_int("DB_IDLE_TIMEOUT", 30000) / 1000,
            connect_timeout_seconds=get_env_int("DB_CONNECTION_TIMEOUT", 10000) / 1000,
            echo=get_env_bool("DB_ECHO", False),
            url_override=url_override,
        )


# ============================================================
# ADMIN CONFIGURATION
# ============================================================

@dataclass(frozen=True)
class AdminConfig:
    """The administrator account expected to exist after startup."""

    email: str
    username: str = "keen_admin"

    @classmethod
    def from_env(cls) -> "AdminConfig":
        return cls(
            email=get_env_var("ADMIN_EMAIL"),
            username=get_env_var("ADMIN_USERNAME", "keen_admin"),
        )


def load_database_config() -> DatabaseConfig:
    """Get database configuration from the environment."""
    return DatabaseConfig.from_env()


def load_admin_config() -> AdminConfig:
    """Get administrator configuration from the environment."""
    return AdminConfig.from_env()


__all__ = [
    "DatabaseConfig",
    "AdminConfig",
    "load_database_config",
    "load_admin_config",
    "get_env_var",
    "get_env_int",
    "get_env_bool",
]
