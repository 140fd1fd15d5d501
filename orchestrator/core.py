"""
Orchestrator - Core.

============================================================
RESPONSIBILITY
============================================================
Lifecycle orchestrator for the keen database layer.

- Ordered startup with fail-fast verification
- Administrator account gate before READY
- Startup health snapshot
- Graceful teardown

============================================================
ARCHITECTURAL POSITION
============================================================
- This orchestrator has NO database logic
- Migration, seeding and pooling belong to the service
- It ONLY sequences calls and reports which phase failed

============================================================
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, List, Optional

from core.exceptions import (
    AdminMisconfigured,
    ConnectivityFailure,
    HealthCheckFailure,
    ShutdownError,
    StateTransitionError,
)
from database.config import AdminConfig
from database.types import DatabaseServiceProtocol, HealthStatus
from .models import (
    FailureKind,
    LifecycleState,
    StartupFailure,
    StartupResult,
    StateTransition,
    is_valid_transition,
)


# ============================================================
# LOGGING SETUP
# ============================================================

def setup_logging(
    level: str = "INFO",
    log_format: str = "text",
) -> logging.Logger:
    """
    Set up process-wide logging.

    Args:
        level: Log level
        log_format: Output format (json or text)

    Returns:
        Configured orchestrator logger
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if log_format == "json":
        formatter = logging.Formatter(
            json.dumps({
                "timestamp": "%(asctime)s",
                "level": "%(levelname)s",
                "logger": "%(name)s",
                "message": "%(message)s",
            })
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
        )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = [handler]

    return logging.getLogger("orchestrator")


# ============================================================
# LIFECYCLE ORCHESTRATOR
# ============================================================

class LifecycleOrchestrator:
    """
    Startup and shutdown sequencing for one database service.

    One initialize() per instance. Every phase failure ends the
    sequence, moves to FAILED and is returned as a StartupResult
    tagged with the phase; nothing after the failed phase runs.
    """

    def __init__(
        self,
        service: DatabaseServiceProtocol,
        admin_config: AdminConfig,
    ):
        """
        Initialize orchestrator.

        Args:
            service: Database service to drive
            admin_config: Administrator expected to exist after startup
        """
        self._service = service
        self._admin_config = admin_config

        self._state = LifecycleState.UNINITIALIZED
        self._transitions: List[StateTransition] = []

        self._logger = logging.getLogger("orchestrator.lifecycle")

    # --------------------------------------------------------
    # Properties
    # --------------------------------------------------------

    @property
    def state(self) -> LifecycleState:
        """Get current lifecycle state."""
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state == LifecycleState.READY

    @property
    def transitions(self) -> List[StateTransition]:
        """Get transition history (copy)."""
        return list(self._transitions)

    @property
    def service(self) -> DatabaseServiceProtocol:
        return self._service

    # --------------------------------------------------------
    # State handling
    # --------------------------------------------------------

    def _transition(self, to_state: LifecycleState, reason: str) -> None:
        """Move to a new state, rejecting illegal transitions."""
        from_state = self._state

        if not is_valid_transition(from_state, to_state):
            raise StateTransitionError(
                f"Invalid lifecycle transition: {from_state.value} -> {to_state.value}",
                from_state=from_state.value,
                to_state=to_state.value,
            )

        self._transitions.append(StateTransition(
            from_state=from_state,
            to_state=to_state,
            reason=reason,
        ))
        self._state = to_state

        self._logger.debug(
            f"State transition | {from_state.value} -> {to_state.value} | {reason}"
        )

    def _fail(
        self,
        result: StartupResult,
        kind: FailureKind,
        message: str,
        error: BaseException,
    ) -> StartupResult:
        """Record a failed phase and close out the result."""
        phase = self._state
        self._transition(LifecycleState.FAILED, message)

        result.state = self._state
        result.failure = StartupFailure(
            kind=kind,
            phase=phase,
            message=message,
            error=error,
        )
        result.completed_at = datetime.now(timezone.utc)

        self._logger.error(
            f"Failed to initialize keen database layer | phase={phase.value} | "
            f"kind={kind.value} | {message}"
        )
        return result

    # --------------------------------------------------------
    # Startup
    # --------------------------------------------------------

    async def initialize(self) -> StartupResult:
        """
        Run the startup sequence.

        1. Connectivity check
        2. Migrations and seeds
        3. Administrator verification
        4. Health snapshot

        Returns:
            StartupResult; check .success or call .raise_for_failure()

        Raises:
            StateTransitionError if called more than once
        """
        if self._state != LifecycleState.UNINITIALIZED:
            raise StateTransitionError(
                f"initialize() already ran; lifecycle is {self._state.value}",
                from_state=self._state.value,
                to_state=LifecycleState.CONNECTING.value,
            )

        self._logger.info("Initializing keen database layer...")
        result = StartupResult(state=self._state)

        # Step 1: Connectivity
        self._transition(LifecycleState.CONNECTING, "startup requested")
        try:
            connected = await self._service.test_connection()
        except Exception as e:
            return self._fail(
                result,
                FailureKind.CONNECTIVITY,
                f"Failed to connect to database: {e}",
                ConnectivityFailure(f"Failed to connect to database: {e}", cause=e),
            )

        if not connected:
            return self._fail(
                result,
                FailureKind.CONNECTIVITY,
                "Failed to connect to database",
                ConnectivityFailure(),
            )

        # Step 2: Migrations and seeds
        self._transition(LifecycleState.MIGRATING, "database reachable")
        try:
            await self._service.initialize()
        except Exception as e:
            return self._fail(
                result,
                FailureKind.INITIALIZATION,
                f"Database initialization failed: {e}",
                e,
            )

        # Step 3: Administrator
        self._transition(LifecycleState.VERIFYING_ADMIN, "schema initialized")
        email = self._admin_config.email
        try:
            admin_user = await self._service.users.get_user_by_email(email)
        except Exception as e:
            message = f"Admin user not properly configured: lookup for {email} failed: {e}"
            return self._fail(
                result,
                FailureKind.ADMIN_MISCONFIGURED,
                message,
                AdminMisconfigured(message, email=email, cause=e),
            )

        reason = self._check_admin(admin_user)
        if reason is not None:
            message = f"Admin user not properly configured: {reason}"
            return self._fail(
                result,
                FailureKind.ADMIN_MISCONFIGURED,
                message,
                AdminMisconfigured(message, email=email),
            )

        result.admin_user = admin_user
        self._log_admin(admin_user)

        # Step 4: Health snapshot
        self._transition(LifecycleState.REPORTING_HEALTH, "admin verified")
        try:
            health = await self._service.get_health_status()
        except Exception as e:
            return self._fail(
                result,
                FailureKind.HEALTH_CHECK,
                f"Database health check failed: {e}",
                HealthCheckFailure(f"Database health check failed: {e}", cause=e),
            )

        result.health = health
        self._log_health(health)

        self._transition(LifecycleState.READY, "startup complete")
        result.state = self._state
        result.completed_at = datetime.now(timezone.utc)

        self._logger.info(
            f"keen database layer initialized successfully | "
            f"duration_ms={result.duration_ms:.0f}"
        )
        return result

    def _check_admin(self, admin_user: Any) -> Optional[str]:
        """Return why the admin record is unacceptable, or None."""
        email = self._admin_config.email
        if admin_user is None:
            return f"no user with email {email}"
        if not getattr(admin_user, "is_admin", False):
            return f"user {email} is not flagged as admin"
        return None

    def _log_admin(self, admin_user: Any) -> None:
        privileges = json.dumps(
            getattr(admin_user, "admin_privileges", None),
            indent=2,
            default=str,
        )
        self._logger.info(
            f"Admin user: {admin_user.email} ({admin_user.username})"
        )
        self._logger.info(f"Admin privileges: {privileges}")

    def _log_health(self, health: HealthStatus) -> None:
        latency = f"{health.latency}ms" if health.latency is not None else "n/a"
        self._logger.info(
            f"Database health: Connected={health.connected}, Latency={latency}"
        )
        self._logger.info(
            f"Connection pool: Total={health.pool_stats.total_count}, "
            f"Idle={health.pool_stats.idle_count}"
        )

    # --------------------------------------------------------
    # Health
    # --------------------------------------------------------

    async def get_health_status(self) -> HealthStatus:
        """Fresh health snapshot from the service; never cached."""
        return await self._service.get_health_status()

    # --------------------------------------------------------
    # Shutdown
    # --------------------------------------------------------

    async def shutdown(self) -> None:
        """
        Release database connections.

        From READY this walks SHUTTING_DOWN -> CLOSED. From CLOSED it
        does nothing. From any other state it still asks the service
        to close whatever a partial startup opened and leaves the
        lifecycle state unchanged.

        Raises:
            ShutdownError if the service fails to close
        """
        if self._state == LifecycleState.CLOSED:
            self._logger.debug("Shutdown requested but lifecycle already closed")
            return

        self._logger.info("Shutting down keen database layer...")

        if self._state == LifecycleState.READY:
            self._transition(LifecycleState.SHUTTING_DOWN, "shutdown requested")
            await self._close_service()
            self._transition(LifecycleState.CLOSED, "connections released")
        else:
            await self._close_service()

        self._logger.info("keen database layer shutdown completed")

    async def _close_service(self) -> None:
        try:
            await self._service.close()
        except Exception as e:
            self._logger.error(f"Error closing database connections: {e}")
            raise ShutdownError(
                f"Failed to close database connections: {e}",
                cause=e,
            ) from e


__all__ = [
    "setup_logging",
    "LifecycleOrchestrator",
]
