"""
Core Module - Exceptions.

============================================================
RESPONSIBILITY
============================================================
Defines all custom exceptions for the keen database layer.

- Provides clear exception hierarchy
- Tags lifecycle failures with the phase that failed
- Includes context for debugging

============================================================
EXCEPTION HIERARCHY
============================================================
KeenError (base)
├── ConfigurationError
│   └── MissingConfigError
├── DatabaseError
│   └── DatabaseInitializationError
└── LifecycleError
    ├── ConnectivityFailure
    ├── AdminMisconfigured
    ├── HealthCheckFailure
    ├── StateTransitionError
    └── ShutdownError

============================================================
"""

from enum import Enum
from datetime import datetime, timezone
from typing import Any, Dict, Optional


# ============================================================
# SEVERITY LEVELS
# ============================================================

class Severity(Enum):
    """Exception severity levels for alerting."""

    LOW = "low"
    """Minor issue, informational."""

    MEDIUM = "medium"
    """Moderate issue, requires attention."""

    HIGH = "high"
    """Serious issue, may impact operations."""

    CRITICAL = "critical"
    """Critical issue, requires immediate action."""


# ============================================================
# BASE EXCEPTION
# ============================================================

class KeenError(Exception):
    """
    Base exception for all keen database layer errors.

    All exceptions carry:
    - severity: for alerting
    - context: for debugging
    - cause: the underlying exception, if any
    - timestamp: when the error occurred
    """

    default_severity: Severity = Severity.MEDIUM

    def __init__(
        self,
        message: str,
        severity: Optional[Severity] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)

        self.message = message
        self.severity = severity or self.default_severity
        self.context = context or {}
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)

        if cause is not None:
            self.context["cause_type"] = type(cause).__name__
            self.context["cause_message"] = str(cause)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for logging."""
        return {
            "type": type(self).__name__,
            "message": self.message,
            "severity": self.severity.value,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.cause) if self.cause else None,
        }

    def to_log_format(self) -> str:
        """Format exception for structured logging."""
        line = f"[{self.severity.value.upper()}] {type(self).__name__}: {self.message}"
        ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
        if ctx_str:
            line = f"{line} | {ctx_str}"
        return line


# ============================================================
# CONFIGURATION ERRORS
# ============================================================

class ConfigurationError(KeenError):
    """Error in configuration."""

    default_severity = Severity.HIGH

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})

        if config_key:
            context["config_key"] = config_key

        super().__init__(message, context=context, **kwargs)


class MissingConfigError(ConfigurationError):
    """Required configuration is missing."""

    def __init__(self, key: str, source: str = "environment"):
        super().__init__(
            message=f"Required environment variable {key} is not set",
            config_key=key,
            context={"source": source},
        )


# ============================================================
# DATABASE ERRORS
# ============================================================

class DatabaseError(KeenError):
    """Database operation failed."""

    default_severity = Severity.HIGH

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        table: Optional[str] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})

        if operation:
            context["operation"] = operation
        if table:
            context["table"] = table

        super().__init__(message, context=context, **kwargs)


class DatabaseInitializationError(DatabaseError):
    """Raised when schema creation or verification fails."""


# ============================================================
# LIFECYCLE ERRORS
# ============================================================

class LifecycleError(KeenError):
    """
    Base class for orchestrator lifecycle errors.

    Every lifecycle error names the phase it belongs to so operators
    can tell which startup step failed.
    """

    default_severity = Severity.CRITICAL

    def __init__(
        self,
        message: str,
        phase: Optional[str] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})

        if phase:
            context["phase"] = phase

        self.phase = phase
        super().__init__(message, context=context, **kwargs)


class ConnectivityFailure(LifecycleError):
    """The service could not reach the database."""

    def __init__(self, message: str = "Failed to connect to database", **kwargs):
        kwargs.setdefault("phase", "connecting")
        super().__init__(message, **kwargs)


class AdminMisconfigured(LifecycleError):
    """The configured administrator is missing or lacks admin rights."""

    def __init__(
        self,
        message: str,
        email: Optional[str] = None,
        **kwargs,
    ):
        kwargs.setdefault("phase", "verifying_admin")
        context = kwargs.pop("context", {})

        if email:
            context["email"] = email

        self.email = email
        super().__init__(message, context=context, **kwargs)


class HealthCheckFailure(LifecycleError):
    """The post-startup health snapshot could not be taken."""

    def __init__(self, message: str = "Database health check failed", **kwargs):
        kwargs.setdefault("phase", "reporting_health")
        super().__init__(message, **kwargs)


class StateTransitionError(LifecycleError):
    """Invalid lifecycle state transition."""

    default_severity = Severity.HIGH

    def __init__(
        self,
        message: str,
        from_state: Optional[str] = None,
        to_state: Optional[str] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})

        if from_state:
            context["from_state"] = from_state
        if to_state:
            context["to_state"] = to_state

        super().__init__(message, context=context, **kwargs)


class ShutdownError(LifecycleError):
    """Releasing database resources failed."""

    default_severity = Severity.MEDIUM

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("phase", "shutting_down")
        super().__init__(message, **kwargs)


__all__ = [
    "Severity",
    "KeenError",
    "ConfigurationError",
    "MissingConfigError",
    "DatabaseError",
    "DatabaseInitializationError",
    "LifecycleError",
    "ConnectivityFailure",
    "AdminMisconfigured",
    "HealthCheckFailure",
    "StateTransitionError",
    "ShutdownError",
]
