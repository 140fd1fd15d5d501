"""
Database - Types.

============================================================
PURPOSE
============================================================
Value types and interfaces shared between the database
service and its consumers.

- PoolStats / HealthStatus: point-in-time health snapshot
- DatabaseServiceProtocol: what the lifecycle orchestrator
  needs from a database service

============================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Protocol, runtime_checkable


# ============================================================
# HEALTH SNAPSHOT
# ============================================================

@dataclass(frozen=True)
class PoolStats:
    """Connection pool occupancy counters."""

    total_count: int = 0
    """Connections currently held by the pool (idle + in use)."""

    idle_count: int = 0
    """Connections checked in and available."""

    overflow_count: int = 0
    """Overflow connections open beyond the pool size."""

    def to_dict(self) -> Dict[str, int]:
        return {
            "totalCount": self.total_count,
            "idleCount": self.idle_count,
            "overflowCount": self.overflow_count,
        }


@dataclass(frozen=True)
class HealthStatus:
    """
    Snapshot of database health.

    Produced fresh on each query and never cached.
    """

    connected: bool
    pool_stats: PoolStats = field(default_factory=PoolStats)
    latency: Optional[float] = None
    """Round-trip time in milliseconds; None when not connected."""

    checked_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "connected": self.connected,
            "latency": self.latency,
            "poolStats": self.pool_stats.to_dict(),
            "checkedAt": self.checked_at.isoformat(),
        }


# ============================================================
# SERVICE INTERFACES
# ============================================================

@runtime_checkable
class UserLookupProtocol(Protocol):
    """Read access to user records."""

    async def get_user_by_email(self, email: str) -> Optional[Any]:
        """Return the user with this email, or None."""
        ...


@runtime_checkable
class DatabaseServiceProtocol(Protocol):
    """
    Contract the lifecycle orchestrator consumes.

    Implementations own migration, seeding and pooling; the
    orchestrator only sequences these calls.
    """

    users: UserLookupProtocol

    async def test_connection(self) -> bool:
        ...

    async def initialize(self) -> None:
        ...

    async def get_health_status(self) -> HealthStatus:
        ...

    async def close(self) -> None:
        ...


__all__ = [
    "PoolStats",
    "HealthStatus",
    "UserLookupProtocol",
    "DatabaseServiceProtocol",
]
