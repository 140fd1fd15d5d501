"""
Core Module Package.

This package contains the core infrastructure components
that all other packages depend on.

Components:
- exceptions: Custom exception hierarchy
"""

from .exceptions import (
    Severity,
    KeenError,
    ConfigurationError,
    MissingConfigError,
    DatabaseError,
    DatabaseInitializationError,
    LifecycleError,
    ConnectivityFailure,
    AdminMisconfigured,
    HealthCheckFailure,
    StateTransitionError,
    ShutdownError,
)

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
