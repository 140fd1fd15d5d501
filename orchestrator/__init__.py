"""
Orchestrator Package.

============================================================
PURPOSE
============================================================
Startup and shutdown lifecycle for the keen database layer.

- LifecycleOrchestrator: ordered, fail-fast startup and teardown
- StartupResult: phase-tagged outcome of initialize()
- CLI: init / test commands

============================================================
USAGE
============================================================

    from database import DatabaseService, load_admin_config
    from orchestrator import LifecycleOrchestrator

    orchestrator = LifecycleOrchestrator(
        service=DatabaseService(),
        admin_config=load_admin_config(),
    )
    result = await orchestrator.initialize()
    result.raise_for_failure()
    ...
    await orchestrator.shutdown()

============================================================
"""

from .models import (
    LifecycleState,
    VALID_TRANSITIONS,
    is_valid_transition,
    StateTransition,
    FailureKind,
    StartupFailure,
    StartupResult,
    Command,
    LifecycleConfig,
)
from .core import (
    LifecycleOrchestrator,
    setup_logging,
)


__all__ = [
    # Models
    "LifecycleState",
    "VALID_TRANSITIONS",
    "is_valid_transition",
    "StateTransition",
    "FailureKind",
    "StartupFailure",
    "StartupResult",
    "Command",
    "LifecycleConfig",

    # Core
    "LifecycleOrchestrator",
    "setup_logging",
]
