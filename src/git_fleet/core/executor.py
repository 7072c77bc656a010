"""Batch command execution across repositories."""

import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import Callable, Dict, Optional, Sequence, Tuple

from .process_control import CancelScope, run_command
from .status import STOP_MESSAGES, STOP_STATES, check_repo_path, probe_status
from .summary import aggregate_results
from ..domain.commands import Command, CommandKind, Operation, StatusProbe
from ..domain.errors import NoTargetsError
from ..domain.models import ExecutionResult, ExecutionState, Repository, Summary
from ..infra.logger import log_debug, log_error, log_warning

DEFAULT_PARALLEL_TASKS = 10
ProgressCallback = Callable[[int, int, int, int], None]


# (tag, output fragments) in priority order, matched against lowercased output
GIT_FAILURE_PATTERNS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("not_git_repo", ("not a git repository",)),
    ("remote_ref_missing", ("couldn't find remote ref", "no such remote")),
    ("local_changes_conflict", ("your local changes", "would be overwritten")),
    ("merge_conflict", ("merge conflict", "fix conflicts and then commit")),
    ("unrelated_histories", ("refusing to merge unrelated histories",)),
    ("not_fast_forward", ("not possible to fast-forward", "cannot fast-forward", "non-fast-forward")),
    ("network_error", ("could not resolve host", "failed to connect", "timed out")),
    ("auth_error", ("authentication failed", "permission denied")),
    ("command_not_found", ("command not found", "is not recognized as")),
)
SHELL_FAILURE_PATTERNS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("command_not_found", ("command not found", "is not recognized as")),
    ("permission_denied", ("permission denied",)),
    ("no_such_file", ("no such file or directory",)),
)


def extract_failure_reason(output: str, kind: CommandKind = CommandKind.GIT) -> str:
    """Map failing command output to a concise reason tag.

    Git-specific tags are only considered for git commands; a shell command
    that prints git's wording somewhere in its output stays ``unknown``.
    """
    text = (output or "").lower()
    patterns = GIT_FAILURE_PATTERNS if kind is CommandKind.GIT else SHELL_FAILURE_PATTERNS
    for tag, fragments in patterns:
        if any(fragment in text for fragment in fragments):
            return tag
    return "unknown"


def run_repo_command(repo: Repository, command: Command, scope: CancelScope) -> ExecutionResult:
    """Run a user command in one repository and classify the outcome."""
    started = time.monotonic()

    path_error = check_repo_path(repo.path)
    if path_error:
        repo.is_valid = False
        repo.error_message = path_error
        log_debug(f"{repo.name}: {path_error}")
        return ExecutionResult.finished(
            repo.name, command.line, ExecutionState.FAILED, started, error_message=path_error
        )

    repo.is_valid = True
    if command.requires_shell:
        outcome = run_command(repo.path, command.line, scope, shell=True)
    else:
        outcome = run_command(repo.path, command.argv, scope)

    if outcome.stopped:
        log_debug(f"{repo.name}: {STOP_MESSAGES[outcome.stop_reason]}")
        return ExecutionResult.finished(
            repo.name,
            command.line,
            STOP_STATES[outcome.stop_reason],
            started,
            output=outcome.output,
            error_message=STOP_MESSAGES[outcome.stop_reason],
            exit_code=outcome.exit_code,
        )

    if outcome.exit_code != 0:
        reason = extract_failure_reason(outcome.output, command.kind)
        message = f"exit code {outcome.exit_code} [{reason}]"
        log_debug(f"{repo.name}: failed, {message}")
        return ExecutionResult.finished(
            repo.name,
            command.line,
            ExecutionState.FAILED,
            started,
            output=outcome.output,
            error_message=message,
            exit_code=outcome.exit_code,
        )

    log_debug(f"{repo.name}: success")
    return ExecutionResult.finished(
        repo.name,
        command.line,
        ExecutionState.SUCCESS,
        started,
        output=outcome.output,
        exit_code=outcome.exit_code,
    )


def process_repo(repo: Repository, operation: Operation, scope: CancelScope) -> ExecutionResult:
    """Run one task; any error is turned into a FAILED result for this repo only."""
    started = time.monotonic()
    try:
        if isinstance(operation, StatusProbe):
            return probe_status(repo, scope)
        return run_repo_command(repo, operation, scope)
    except Exception as exc:
        log_error(f"{repo.name}: unexpected error - {exc}")
        return ExecutionResult.finished(
            repo.name, operation.line, ExecutionState.FAILED, started, error_message=str(exc)
        )


def execute_parallel(
    targets: Sequence[Repository],
    operation: Operation,
    parallel_tasks: Optional[int] = DEFAULT_PARALLEL_TASKS,
    timeout: Optional[float] = None,
    scope: Optional[CancelScope] = None,
    progress_cb: Optional[ProgressCallback] = None,
) -> Summary:
    """Run ``operation`` once per target and join every task.

    At most ``parallel_tasks`` tasks run at once (``None`` means one worker
    per target). All tasks share ``scope``; when none is given a new one is
    created with ``timeout`` as the batch deadline. Ctrl-C while waiting
    cancels the scope and the remaining tasks are still collected, so the
    returned Summary always holds one result per target, in target order.
    """
    if not targets:
        raise NoTargetsError()
    if not isinstance(operation, (Command, StatusProbe)):
        raise TypeError(f"unsupported operation: {operation!r}")
    names = [repo.name for repo in targets]
    if len(set(names)) != len(names):
        raise ValueError("targets must not contain duplicate repositories")
    if parallel_tasks is not None and parallel_tasks < 1:
        raise ValueError(f"parallel_tasks must be >= 1: {parallel_tasks}")

    if scope is None:
        scope = CancelScope(timeout)

    total = len(targets)
    workers = total if parallel_tasks is None else min(parallel_tasks, total)
    log_debug(f"start batch: {operation.line}, total: {total}, parallel tasks: {workers}")

    results: Dict[str, ExecutionResult] = {}
    counts = {"success": 0, "fail": 0}

    if progress_cb:
        progress_cb(0, total, 0, 0)

    def collect(future: "Future[ExecutionResult]", repo: Repository) -> None:
        try:
            result = future.result()
        except Exception as exc:
            log_error(f"{repo.name}: task crashed - {exc}")
            result = ExecutionResult.finished(
                repo.name, operation.line, ExecutionState.FAILED, started_at, error_message=str(exc)
            )
        results[repo.name] = result
        if result.success:
            counts["success"] += 1
        else:
            counts["fail"] += 1
        if progress_cb:
            progress_cb(len(results), total, counts["success"], counts["fail"])

    started_at = time.monotonic()
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="gf-task") as executor:
        future_to_repo = {
            executor.submit(process_repo, repo, operation, scope): repo for repo in targets
        }
        try:
            for future in as_completed(future_to_repo):
                collect(future, future_to_repo[future])
        except KeyboardInterrupt:
            log_warning("interrupted, cancelling running tasks")
            scope.cancel()
            for future, repo in future_to_repo.items():
                if repo.name not in results:
                    collect(future, repo)

    summary = aggregate_results(
        targets,
        results,
        started_at,
        repositories=targets if isinstance(operation, StatusProbe) else None,
    )
    log_debug(
        f"batch finished, success: {summary.successful_count}, failed: {summary.failed_count}, "
        f"cancelled: {summary.cancelled_count}"
    )
    return summary


__all__ = [
    "DEFAULT_PARALLEL_TASKS",
    "ProgressCallback",
    "GIT_FAILURE_PATTERNS",
    "SHELL_FAILURE_PATTERNS",
    "extract_failure_reason",
    "run_repo_command",
    "process_repo",
    "execute_parallel",
]
