"""Application services: resolve targets, run the batch, decide the exit code."""

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from ..core.executor import DEFAULT_PARALLEL_TASKS, ProgressCallback, execute_parallel
from ..core.process_control import CancelScope
from ..domain.commands import Command, Operation, StatusProbe
from ..domain.errors import FleetError
from ..domain.models import Summary
from ..domain.registry import RepositoryRegistry, resolve_all, resolve_targets
from ..domain.requests import ExecuteRequest, GotoRequest, Request, StatusRequest
from ..infra.logger import log_debug

DEFAULT_TIMEOUT = 300.0
EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


@dataclass(frozen=True)
class RunOptions:
    """Per-invocation execution settings."""

    parallel_tasks: Optional[int] = DEFAULT_PARALLEL_TASKS
    timeout: Optional[float] = DEFAULT_TIMEOUT


@dataclass(frozen=True)
class RequestOutcome:
    """What the presentation layer needs after a request was handled."""

    exit_code: int
    summary: Optional[Summary] = None
    path: str = ""
    error: str = ""
    interrupted: bool = False


def _run_batch(
    registry: RepositoryRegistry,
    groups: Sequence[str],
    operation: Operation,
    options: RunOptions,
    scope: Optional[CancelScope],
    progress_cb: Optional[ProgressCallback],
    target_all: bool = False,
) -> Tuple[bool, Optional[Summary], str]:
    try:
        targets = resolve_all(registry) if target_all else resolve_targets(registry, groups)
    except FleetError as exc:
        return False, None, str(exc)

    log_debug(f"targets: {', '.join(repo.name for repo in targets)}")
    summary = execute_parallel(
        targets,
        operation,
        parallel_tasks=options.parallel_tasks,
        timeout=options.timeout,
        scope=scope,
        progress_cb=progress_cb,
    )
    return True, summary, ""


def run_fleet_command(
    registry: RepositoryRegistry,
    groups: Sequence[str],
    command: Command,
    options: RunOptions = RunOptions(),
    scope: Optional[CancelScope] = None,
    progress_cb: Optional[ProgressCallback] = None,
) -> Tuple[bool, Optional[Summary], str]:
    """Run ``command`` in every repository of ``groups``.

    Returns ``(ok, summary, error)``; ``ok`` is False only when the request
    could not start (unknown group or repository, no targets).
    """
    return _run_batch(registry, groups, command, options, scope, progress_cb)


def run_status_report(
    registry: RepositoryRegistry,
    groups: Sequence[str] = (),
    options: RunOptions = RunOptions(),
    scope: Optional[CancelScope] = None,
    progress_cb: Optional[ProgressCallback] = None,
) -> Tuple[bool, Optional[Summary], str]:
    """Probe working trees of ``groups``, or of every repository when empty."""
    return _run_batch(
        registry,
        groups,
        StatusProbe(),
        options,
        scope,
        progress_cb,
        target_all=not groups,
    )


def locate_repository(registry: RepositoryRegistry, name: str) -> Tuple[bool, str, str]:
    """Return ``(ok, path, error)`` for one configured repository."""
    try:
        return True, registry.repository_path(name), ""
    except FleetError as exc:
        return False, "", str(exc)


def batch_exit_code(summary: Summary, allow_failure: bool = False) -> int:
    if allow_failure or not summary.has_failures:
        return EXIT_OK
    return EXIT_FAILURE


def handle_request(
    request: Request,
    registry: RepositoryRegistry,
    options: RunOptions = RunOptions(),
    scope: Optional[CancelScope] = None,
    progress_cb: Optional[ProgressCallback] = None,
) -> RequestOutcome:
    """Dispatch one request; every request type must be handled here."""
    if scope is None:
        scope = CancelScope(options.timeout)

    if isinstance(request, GotoRequest):
        ok, path, error = locate_repository(registry, request.repository)
        return RequestOutcome(exit_code=EXIT_OK if ok else EXIT_FAILURE, path=path, error=error)

    if isinstance(request, StatusRequest):
        ok, summary, error = run_status_report(registry, request.groups, options, scope, progress_cb)
        allow_failure = False
    elif isinstance(request, ExecuteRequest):
        ok, summary, error = run_fleet_command(
            registry, request.groups, request.command, options, scope, progress_cb
        )
        allow_failure = request.allow_failure
    else:
        raise TypeError(f"unsupported request: {request!r}")

    if not ok or summary is None:
        return RequestOutcome(exit_code=EXIT_FAILURE, error=error)
    if scope.cancelled:
        return RequestOutcome(exit_code=EXIT_INTERRUPTED, summary=summary, interrupted=True)
    return RequestOutcome(exit_code=batch_exit_code(summary, allow_failure), summary=summary)


__all__ = [
    "DEFAULT_TIMEOUT",
    "EXIT_OK",
    "EXIT_FAILURE",
    "EXIT_INTERRUPTED",
    "RunOptions",
    "RequestOutcome",
    "run_fleet_command",
    "run_status_report",
    "locate_repository",
    "batch_exit_code",
    "handle_request",
]
