"""Application services orchestrating domain and core capabilities."""

from .execution import (
    RequestOutcome,
    RunOptions,
    batch_exit_code,
    handle_request,
    locate_repository,
    run_fleet_command,
    run_status_report,
)

__all__ = [
    "RequestOutcome",
    "RunOptions",
    "batch_exit_code",
    "handle_request",
    "locate_repository",
    "run_fleet_command",
    "run_status_report",
]
