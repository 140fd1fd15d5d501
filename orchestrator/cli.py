"""
Orchestrator - CLI.

============================================================
RESPONSIBILITY
============================================================
Command-line interface for the keen database layer.

- init: run the startup sequence and report the outcome
- test: run startup, print health, then shut down
- anything else: print usage and exit 1

Exit codes: 0 success, 1 any failure, 130 interrupted.

============================================================
USAGE
============================================================
python -m orchestrator.cli init
python -m orchestrator.cli test --log-level DEBUG
keen-db test --log-format json

============================================================
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Awaitable, Callable, Dict, List, Optional

from dotenv import load_dotenv

from core.exceptions import KeenError, ShutdownError
from database.config import AdminConfig, load_admin_config
from database.service import DatabaseService
from database.types import DatabaseServiceProtocol
from .core import LifecycleOrchestrator, setup_logging
from .models import Command, LifecycleConfig, LifecycleState, StartupResult


logger = logging.getLogger("orchestrator.cli")

PROG = "keen-db"


# ============================================================
# CLI ARGUMENT PARSER
# ============================================================

class UsageError(Exception):
    """Command line could not be parsed."""


class LifecycleArgumentParser(argparse.ArgumentParser):
    """Argument parser that reports bad input instead of exiting with 2."""

    def error(self, message: str) -> None:
        raise UsageError(message)


def create_parser(defaults: Optional[LifecycleConfig] = None) -> LifecycleArgumentParser:
    """Create the argument parser."""
    defaults = defaults or LifecycleConfig()

    parser = LifecycleArgumentParser(
        prog=PROG,
        description="keen database layer lifecycle",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=True,
        epilog=usage_text(),
    )

    parser.add_argument(
        "command",
        nargs="?",
        metavar="{" + ",".join(c.command_name for c in Command) + "}",
        help="Lifecycle command to run",
    )

    logging_group = parser.add_argument_group("Logging Options")

    logging_group.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=defaults.log_level,
        help=f"Logging level (default: {defaults.log_level})",
    )

    logging_group.add_argument(
        "--log-format",
        type=str.lower,
        choices=["json", "text"],
        default=defaults.log_format,
        help=f"Logging format (default: {defaults.log_format})",
    )

    return parser


def usage_text() -> str:
    lines = [f"Usage: {PROG} [{'|'.join(c.command_name for c in Command)}]"]
    for command in Command:
        lines.append(f"  {command.command_name} - {command.description}")
    return "\n".join(lines)


def print_usage() -> None:
    print(usage_text())


# ============================================================
# COMMAND HANDLERS
# ============================================================

def report_failure(label: str, result: StartupResult) -> None:
    """Print the failed phase and reason to stderr."""
    logger.error(f"Startup result | {json.dumps(result.to_dict())}")
    failure = result.failure
    if failure is None:
        print(f"{label}: lifecycle ended in state {result.state.value}", file=sys.stderr)
        return
    print(
        f"{label} [{failure.kind.value}] during {failure.phase.value}: {failure.message}",
        file=sys.stderr,
    )


async def run_init(orchestrator: LifecycleOrchestrator) -> int:
    """Initialize the database layer."""
    result = await orchestrator.initialize()
    if not result.success:
        report_failure("Database initialization failed", result)
        return 1

    print("Database initialization completed!")
    return 0


async def run_test(orchestrator: LifecycleOrchestrator) -> int:
    """Initialize, print health, shut down."""
    result = await orchestrator.initialize()
    if not result.success:
        report_failure("Database test failed", result)
        return 1

    print("Testing database connectivity...")
    health = await orchestrator.get_health_status()
    print(f"Database health: {json.dumps(health.to_dict(), indent=2)}")

    await orchestrator.shutdown()
    return 0


COMMAND_HANDLERS: Dict[Command, Callable[[LifecycleOrchestrator], Awaitable[int]]] = {
    Command.INIT: run_init,
    Command.TEST: run_test,
}


# ============================================================
# MAIN ENTRY POINT
# ============================================================

async def async_main(
    command: Command,
    service: Optional[DatabaseServiceProtocol] = None,
    admin_config: Optional[AdminConfig] = None,
) -> int:
    """
    Async main entry point.

    Args:
        command: Command to run
        service: Database service (default: built from environment)
        admin_config: Administrator config (default: from environment)

    Returns:
        Exit code
    """
    orchestrator: Optional[LifecycleOrchestrator] = None

    try:
        orchestrator = LifecycleOrchestrator(
            service=service or DatabaseService(),
            admin_config=admin_config or load_admin_config(),
        )
        handler = COMMAND_HANDLERS[command]
        return await handler(orchestrator)

    except KeenError as e:
        logger.error(e.to_log_format())
        print(f"Database {command.command_name} failed: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        print(f"Database {command.command_name} failed: {e}", file=sys.stderr)
        return 1
    finally:
        if orchestrator is not None and orchestrator.state != LifecycleState.CLOSED:
            await _release(orchestrator)


async def _release(orchestrator: LifecycleOrchestrator) -> None:
    try:
        await orchestrator.shutdown()
    except ShutdownError as e:
        logger.error(e.to_log_format())


def main(
    argv: Optional[List[str]] = None,
    service: Optional[DatabaseServiceProtocol] = None,
    admin_config: Optional[AdminConfig] = None,
) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Command line arguments (default: sys.argv[1:])
        service: Injected database service, mainly for tests
        admin_config: Injected administrator config, mainly for tests

    Returns:
        Exit code
    """
    load_dotenv()

    parser = create_parser(LifecycleConfig.from_env())
    try:
        args = parser.parse_args(argv)
    except UsageError as e:
        print(f"Error: {e}", file=sys.stderr)
        print_usage()
        return 1

    if args.command is None:
        print_usage()
        return 1

    try:
        command = Command.from_name(args.command)
    except ValueError:
        print_usage()
        return 1

    config = LifecycleConfig(log_level=args.log_level, log_format=args.log_format)
    errors = config.validate()
    if errors:
        for error in errors:
            print(f"Error: {error}", file=sys.stderr)
        return 1

    setup_logging(level=config.log_level, log_format=config.log_format)

    try:
        return asyncio.run(async_main(command, service=service, admin_config=admin_config))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130


# ============================================================
# MODULE EXECUTION
# ============================================================

if __name__ == "__main__":
    sys.exit(main())
