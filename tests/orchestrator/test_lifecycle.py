"""
Tests for the Lifecycle Orchestrator.

============================================================
PURPOSE
============================================================
Verify ordered, fail-fast startup and safe shutdown.

TEST PRINCIPLES:
- Each phase failure stops every later phase
- Collaborator errors surface unchanged
- The admin gate blocks READY
- Shutdown never raises for an unopened service

============================================================
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from core.exceptions import (
    AdminMisconfigured,
    ConnectivityFailure,
    HealthCheckFailure,
    ShutdownError,
    StateTransitionError,
)
from database.config import AdminConfig
from database.models import User
from database.types import HealthStatus, PoolStats
from orchestrator.core import LifecycleOrchestrator
from orchestrator.models import (
    FailureKind,
    LifecycleState,
    VALID_TRANSITIONS,
    is_valid_transition,
)


ADMIN_EMAIL = "admin@keen.dev"


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def admin_config():
    return AdminConfig(email=ADMIN_EMAIL, username="keen_admin")


@pytest.fixture
def admin_user():
    return User(
        email=ADMIN_EMAIL,
        username="keen_admin",
        is_admin=True,
        role="super_admin",
        admin_privileges={"unlimited_credits": True, "audit_access": True},
    )


@pytest.fixture
def health():
    return HealthStatus(
        connected=True,
        latency=3.2,
        pool_stats=PoolStats(total_count=2, idle_count=1),
    )


@pytest.fixture
def service(admin_user, health):
    """Database service stub that succeeds at every step."""
    svc = MagicMock()
    svc.test_connection = AsyncMock(return_value=True)
    svc.initialize = AsyncMock(return_value=None)
    svc.users = MagicMock()
    svc.users.get_user_by_email = AsyncMock(return_value=admin_user)
    svc.get_health_status = AsyncMock(return_value=health)
    svc.close = AsyncMock(return_value=None)
    return svc


@pytest.fixture
def orchestrator(service, admin_config):
    return LifecycleOrchestrator(service=service, admin_config=admin_config)


# ============================================================
# STATE MACHINE
# ============================================================

class TestTransitions:
    """Tests for the transition table."""

    def test_startup_path_is_linear(self):
        path = [
            LifecycleState.UNINITIALIZED,
            LifecycleState.CONNECTING,
            LifecycleState.MIGRATING,
            LifecycleState.VERIFYING_ADMIN,
            LifecycleState.REPORTING_HEALTH,
            LifecycleState.READY,
            LifecycleState.SHUTTING_DOWN,
            LifecycleState.CLOSED,
        ]
        for current, following in zip(path, path[1:]):
            assert is_valid_transition(current, following)

    def test_failed_reachable_from_every_startup_state(self):
        for state in (
            LifecycleState.UNINITIALIZED,
            LifecycleState.CONNECTING,
            LifecycleState.MIGRATING,
            LifecycleState.VERIFYING_ADMIN,
            LifecycleState.REPORTING_HEALTH,
        ):
            assert is_valid_transition(state, LifecycleState.FAILED)

    def test_shutdown_only_from_ready(self):
        sources = [
            state for state, targets in VALID_TRANSITIONS.items()
            if LifecycleState.SHUTTING_DOWN in targets
        ]
        assert sources == [LifecycleState.READY]

    def test_terminal_states_have_no_exits(self):
        assert VALID_TRANSITIONS[LifecycleState.FAILED] == set()
        assert VALID_TRANSITIONS[LifecycleState.CLOSED] == set()
        assert LifecycleState.FAILED.is_terminal
        assert LifecycleState.CLOSED.is_terminal
        assert not LifecycleState.READY.is_terminal


# ============================================================
# INITIALIZE
# ============================================================

class TestInitializeSuccess:
    """Tests for a fully successful startup."""

    @pytest.mark.asyncio
    async def test_reaches_ready(self, orchestrator, service, admin_user):
        result = await orchestrator.initialize()

        assert result.success
        assert result.failure is None
        assert result.state == LifecycleState.READY
        assert orchestrator.state == LifecycleState.READY
        assert orchestrator.is_ready
        assert result.admin_user is admin_user
        assert result.duration_ms is not None

        service.users.get_user_by_email.assert_awaited_once_with(ADMIN_EMAIL)
        result.raise_for_failure()

    @pytest.mark.asyncio
    async def test_phases_run_in_order(self, orchestrator):
        await orchestrator.initialize()

        visited = [t.to_state for t in orchestrator.transitions]
        assert visited == [
            LifecycleState.CONNECTING,
            LifecycleState.MIGRATING,
            LifecycleState.VERIFYING_ADMIN,
            LifecycleState.REPORTING_HEALTH,
            LifecycleState.READY,
        ]

    @pytest.mark.asyncio
    async def test_health_status_shape_after_ready(self, orchestrator):
        await orchestrator.initialize()

        health = await orchestrator.get_health_status()
        data = health.to_dict()

        assert isinstance(data["connected"], bool)
        assert isinstance(data["latency"], float)
        assert isinstance(data["poolStats"]["totalCount"], int)
        assert isinstance(data["poolStats"]["idleCount"], int)

    @pytest.mark.asyncio
    async def test_health_is_requeried_each_call(self, orchestrator, service):
        await orchestrator.initialize()
        await orchestrator.get_health_status()
        await orchestrator.get_health_status()

        # One startup snapshot plus two pass-through calls
        assert service.get_health_status.await_count == 3

    @pytest.mark.asyncio
    async def test_second_initialize_rejected(self, orchestrator):
        await orchestrator.initialize()

        with pytest.raises(StateTransitionError):
            await orchestrator.initialize()


class TestConnectivityFailure:
    """Tests for the connect check."""

    @pytest.mark.asyncio
    async def test_unreachable_database_fails_without_migrating(self, orchestrator, service):
        service.test_connection.return_value = False

        result = await orchestrator.initialize()

        assert not result.success
        assert result.state == LifecycleState.FAILED
        assert result.failure.kind == FailureKind.CONNECTIVITY
        assert result.failure.phase == LifecycleState.CONNECTING
        assert isinstance(result.failure.error, ConnectivityFailure)
        service.initialize.assert_not_awaited()
        service.users.get_user_by_email.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_raising_connection_check_fails_without_migrating(self, orchestrator, service):
        boom = OSError("connection refused")
        service.test_connection.side_effect = boom

        result = await orchestrator.initialize()

        assert result.failure.kind == FailureKind.CONNECTIVITY
        assert result.failure.error.cause is boom
        assert "connection refused" in result.failure.message
        service.initialize.assert_not_awaited()

        with pytest.raises(ConnectivityFailure):
            result.raise_for_failure()


class TestInitializationFailure:
    """Tests for the migrate/seed step."""

    @pytest.mark.asyncio
    async def test_error_propagates_unchanged(self, orchestrator, service):
        boom = RuntimeError("migration 003 failed")
        service.initialize.side_effect = boom

        result = await orchestrator.initialize()

        assert result.failure.kind == FailureKind.INITIALIZATION
        assert result.failure.phase == LifecycleState.MIGRATING
        assert result.failure.error is boom
        service.users.get_user_by_email.assert_not_awaited()
        service.get_health_status.assert_not_awaited()

        with pytest.raises(RuntimeError) as exc_info:
            result.raise_for_failure()
        assert exc_info.value is boom

    @pytest.mark.asyncio
    async def test_no_cleanup_attempted(self, orchestrator, service):
        service.initialize.side_effect = RuntimeError("seed failed")

        await orchestrator.initialize()

        service.close.assert_not_awaited()


class TestAdminVerification:
    """Tests for the admin gate."""

    @pytest.mark.asyncio
    async def test_missing_admin_fails(self, orchestrator, service):
        service.users.get_user_by_email.return_value = None

        result = await orchestrator.initialize()

        assert result.state == LifecycleState.FAILED
        assert result.failure.kind == FailureKind.ADMIN_MISCONFIGURED
        assert result.failure.phase == LifecycleState.VERIFYING_ADMIN
        assert isinstance(result.failure.error, AdminMisconfigured)
        assert ADMIN_EMAIL in result.failure.message
        assert "Admin user not properly configured" in result.failure.message
        assert not orchestrator.is_ready
        service.get_health_status.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_non_admin_user_fails(self, orchestrator, service, admin_user):
        admin_user.is_admin = False

        result = await orchestrator.initialize()

        assert result.failure.kind == FailureKind.ADMIN_MISCONFIGURED
        assert "not flagged as admin" in result.failure.message
        assert result.failure.error.email == ADMIN_EMAIL

    @pytest.mark.asyncio
    async def test_lookup_error_fails_admin_phase(self, orchestrator, service):
        boom = RuntimeError("users table locked")
        service.users.get_user_by_email.side_effect = boom

        result = await orchestrator.initialize()

        assert result.failure.kind == FailureKind.ADMIN_MISCONFIGURED
        assert result.failure.error.cause is boom


class TestHealthSnapshotFailure:
    """A failed startup health snapshot is a failed startup."""

    @pytest.mark.asyncio
    async def test_health_error_is_fatal(self, orchestrator, service):
        service.get_health_status.side_effect = RuntimeError("pool exhausted")

        result = await orchestrator.initialize()

        assert not result.success
        assert result.failure.kind == FailureKind.HEALTH_CHECK
        assert result.failure.phase == LifecycleState.REPORTING_HEALTH
        assert isinstance(result.failure.error, HealthCheckFailure)
        assert orchestrator.state == LifecycleState.FAILED


# ============================================================
# SHUTDOWN
# ============================================================

class TestShutdown:
    """Tests for shutdown()."""

    @pytest.mark.asyncio
    async def test_shutdown_from_ready_closes(self, orchestrator, service):
        await orchestrator.initialize()
        await orchestrator.shutdown()

        assert orchestrator.state == LifecycleState.CLOSED
        service.close.assert_awaited_once()
        assert orchestrator.transitions[-2].to_state == LifecycleState.SHUTTING_DOWN

    @pytest.mark.asyncio
    async def test_shutdown_without_initialize_does_not_raise(self, orchestrator, service):
        await orchestrator.shutdown()

        assert orchestrator.state == LifecycleState.UNINITIALIZED
        service.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_shutdown_after_failure_keeps_failed(self, orchestrator, service):
        service.test_connection.return_value = False
        await orchestrator.initialize()

        await orchestrator.shutdown()

        assert orchestrator.state == LifecycleState.FAILED
        service.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_second_shutdown_is_noop(self, orchestrator, service):
        await orchestrator.initialize()
        await orchestrator.shutdown()
        await orchestrator.shutdown()

        service.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close_error_raises_shutdown_error(self, orchestrator, service):
        await orchestrator.initialize()
        service.close.side_effect = OSError("socket closed")

        with pytest.raises(ShutdownError) as exc_info:
            await orchestrator.shutdown()

        assert isinstance(exc_info.value.cause, OSError)
        assert exc_info.value.phase == "shutting_down"
