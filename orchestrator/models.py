"""
Orchestrator - Models.

============================================================
RESPONSIBILITY
============================================================
Defines data models for the lifecycle orchestrator.

- Lifecycle states and the legal transitions between them
- Failure kinds, tagged with the phase that failed
- Startup result returned by initialize()
- CLI commands and configuration

============================================================
STATE MACHINE
============================================================
UNINITIALIZED -> CONNECTING -> MIGRATING -> VERIFYING_ADMIN
    -> REPORTING_HEALTH -> READY -> SHUTTING_DOWN -> CLOSED

FAILED is reachable from every startup state and is terminal.

============================================================
"""

from enum import Enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set
import os


# ============================================================
# LIFECYCLE STATES
# ============================================================

class LifecycleState(Enum):
    """Lifecycle states of the database layer."""

    UNINITIALIZED = "uninitialized"
    """Nothing attempted yet."""

    CONNECTING = "connecting"
    """Checking connectivity."""

    MIGRATING = "migrating"
    """Schema migration and seed data."""

    VERIFYING_ADMIN = "verifying_admin"
    """Checking the administrator account."""

    REPORTING_HEALTH = "reporting_health"
    """Taking the startup health snapshot."""

    READY = "ready"
    """Startup finished, database usable."""

    FAILED = "failed"
    """Startup aborted. Terminal."""

    SHUTTING_DOWN = "shutting_down"
    """Releasing connections."""

    CLOSED = "closed"
    """Connections released. Terminal."""

    @property
    def is_terminal(self) -> bool:
        """Check if state is terminal."""
        return self in (LifecycleState.FAILED, LifecycleState.CLOSED)


# ============================================================
# STATE TRANSITIONS
# ============================================================

VALID_TRANSITIONS: Dict[LifecycleState, Set[LifecycleState]] = {
    LifecycleState.UNINITIALIZED: {
        LifecycleState.CONNECTING,
        LifecycleState.FAILED,
    },
    LifecycleState.CONNECTING: {
        LifecycleState.MIGRATING,
        LifecycleState.FAILED,
    },
    LifecycleState.MIGRATING: {
        LifecycleState.VERIFYING_ADMIN,
        LifecycleState.FAILED,
    },
    LifecycleState.VERIFYING_ADMIN: {
        LifecycleState.REPORTING_HEALTH,
        LifecycleState.FAILED,
    },
    LifecycleState.REPORTING_HEALTH: {
        LifecycleState.READY,
        LifecycleState.FAILED,
    },
    LifecycleState.READY: {
        LifecycleState.SHUTTING_DOWN,
    },
    LifecycleState.SHUTTING_DOWN: {
        LifecycleState.CLOSED,
    },
    LifecycleState.FAILED: set(),  # Terminal
    LifecycleState.CLOSED: set(),  # Terminal
}


def is_valid_transition(from_state: LifecycleState, to_state: LifecycleState) -> bool:
    """Check whether a transition is allowed."""
    return to_state in VALID_TRANSITIONS.get(from_state, set())


@dataclass
class StateTransition:
    """Record of a state transition."""

    from_state: LifecycleState
    to_state: LifecycleState
    reason: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "from_state": self.from_state.value,
            "to_state": self.to_state.value,
            "reason": self.reason,
            "timestamp": self.timestamp.isoformat(),
        }


# ============================================================
# FAILURES
# ============================================================

class FailureKind(Enum):
    """Why startup failed."""

    CONNECTIVITY = "connectivity_failure"
    """Connectivity check returned False or raised."""

    INITIALIZATION = "initialization_failure"
    """Migration/seed step raised."""

    ADMIN_MISCONFIGURED = "admin_misconfigured"
    """Administrator missing or not flagged as admin."""

    HEALTH_CHECK = "health_check_failure"
    """Startup health snapshot raised."""


@dataclass
class StartupFailure:
    """A failed startup phase and the error behind it."""

    kind: FailureKind
    phase: LifecycleState
    message: str
    error: BaseException
    """The error as raised; collaborator errors are kept unchanged."""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "phase": self.phase.value,
            "message": self.message,
            "error_type": type(self.error).__name__,
        }


@dataclass
class StartupResult:
    """Outcome of one initialize() sequence."""

    state: LifecycleState
    failure: Optional[StartupFailure] = None
    admin_user: Optional[Any] = None
    health: Optional[Any] = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None

    @property
    def success(self) -> bool:
        return self.failure is None and self.state == LifecycleState.READY

    @property
    def duration_ms(self) -> Optional[float]:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds() * 1000

    def raise_for_failure(self) -> None:
        """Re-raise the failure's error unchanged; no-op on success."""
        if self.failure is not None:
            raise self.failure.error

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "state": self.state.value,
            "failure": self.failure.to_dict() if self.failure else None,
            "health": self.health.to_dict() if self.health is not None else None,
            "duration_ms": self.duration_ms,
        }


# ============================================================
# CLI COMMANDS
# ============================================================

class Command(Enum):
    """Closed set of CLI commands."""

    INIT = ("init", "Initialize database with migrations and seeds")
    TEST = ("test", "Test database connectivity and health")

    def __init__(self, command_name: str, description: str):
        self._command_name = command_name
        self._description = description

    @property
    def command_name(self) -> str:
        return self._command_name

    @property
    def description(self) -> str:
        return self._description

    @classmethod
    def from_name(cls, name: str) -> "Command":
        for command in cls:
            if command.command_name == name:
                return command
        raise ValueError(f"Unknown command: {name}")


# ============================================================
# CONFIGURATION
# ============================================================

@dataclass
class LifecycleConfig:
    """Configuration for the lifecycle CLI."""

    log_level: str = "INFO"
    """Logging level."""

    log_format: str = "text"
    """Log output format (json or text)."""

    @classmethod
    def from_env(cls) -> "LifecycleConfig":
        """Load configuration from environment variables."""
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_format=os.getenv("LOG_FORMAT", "text").lower(),
        )

    def validate(self) -> List[str]:
        """Validate configuration, return list of errors."""
        errors = []

        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            errors.append(f"log_level must be a logging level name, got {self.log_level}")

        if self.log_format not in ("json", "text"):
            errors.append(f"log_format must be json or text, got {self.log_format}")

        return errors


# ============================================================
# EXPORTS
# ============================================================

__all__ = [
    # States
    "LifecycleState",
    "VALID_TRANSITIONS",
    "is_valid_transition",
    "StateTransition",

    # Results
    "FailureKind",
    "StartupFailure",
    "StartupResult",

    # CLI
    "Command",
    "LifecycleConfig",
]
