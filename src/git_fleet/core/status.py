"""Working-tree status probe for one repository."""

import time
from pathlib import Path

from .process_control import CancelScope, StopReason, run_command
from ..domain.commands import BRANCH_ARGV, STATUS_ARGV
from ..domain.models import ExecutionResult, ExecutionState, Repository, RepoStatus
from ..domain.porcelain import ChangeCounts, classify, parse_porcelain

DETACHED_BRANCH = "detached"
STATUS_COMMAND = " ".join(STATUS_ARGV)

STOP_STATES = {
    StopReason.TIMEOUT: ExecutionState.TIMEOUT,
    StopReason.CANCELLED: ExecutionState.CANCELLED,
}
STOP_MESSAGES = {
    StopReason.TIMEOUT: "command execution timed out",
    StopReason.CANCELLED: "command execution was cancelled",
}


def check_repo_path(path: str) -> str:
    """Return an error message for an unusable repository path, else ``""``."""
    repo_path = Path(path)
    if not repo_path.is_dir():
        return f"repository path does not exist or is not a directory: {path}"
    if not (repo_path / ".git").exists():
        return f"not a git repository (missing .git): {path}"
    return ""


def read_branch(repo: Repository, scope: CancelScope) -> str:
    """Current branch, ``"detached"`` on a detached HEAD, ``""`` if unknown."""
    outcome = run_command(repo.path, BRANCH_ARGV, scope)
    if not outcome.ok:
        return ""
    return outcome.output.strip() or DETACHED_BRANCH


def apply_status(repo: Repository, counts: ChangeCounts, command_ok: bool) -> Repository:
    repo.created_files = counts.created
    repo.modified_files = counts.modified
    repo.deleted_files = counts.deleted
    repo.status = classify(repo.is_valid, command_ok, counts)
    return repo


def _mark_error(repo: Repository, message: str) -> None:
    repo.status = RepoStatus.ERROR
    repo.error_message = message


def probe_status(repo: Repository, scope: CancelScope) -> ExecutionResult:
    """Classify ``repo`` in place and return the probe's execution result.

    Invalid path or a failing ``git status`` give a FAILED result, a stopped
    scope gives TIMEOUT/CANCELLED; the repository is marked Error in all of
    those cases.
    """
    started = time.monotonic()

    path_error = check_repo_path(repo.path)
    if path_error:
        repo.is_valid = False
        _mark_error(repo, path_error)
        return ExecutionResult.finished(
            repo.name, STATUS_COMMAND, ExecutionState.FAILED, started, error_message=path_error
        )

    repo.is_valid = True
    outcome = run_command(repo.path, STATUS_ARGV, scope)

    if outcome.stopped:
        message = STOP_MESSAGES[outcome.stop_reason]
        _mark_error(repo, message)
        return ExecutionResult.finished(
            repo.name,
            STATUS_COMMAND,
            STOP_STATES[outcome.stop_reason],
            started,
            output=outcome.output,
            error_message=message,
            exit_code=outcome.exit_code,
        )

    if outcome.exit_code != 0:
        message = f"git status exited with code {outcome.exit_code}"
        apply_status(repo, ChangeCounts(), command_ok=False)
        repo.error_message = message
        return ExecutionResult.finished(
            repo.name,
            STATUS_COMMAND,
            ExecutionState.FAILED,
            started,
            output=outcome.output,
            error_message=message,
            exit_code=outcome.exit_code,
        )

    apply_status(repo, parse_porcelain(outcome.output), command_ok=True)
    repo.branch = read_branch(repo, scope)
    return ExecutionResult.finished(
        repo.name,
        STATUS_COMMAND,
        ExecutionState.SUCCESS,
        started,
        output=outcome.output,
        exit_code=outcome.exit_code,
    )


__all__ = [
    "DETACHED_BRANCH",
    "STATUS_COMMAND",
    "STOP_STATES",
    "STOP_MESSAGES",
    "check_repo_path",
    "read_branch",
    "apply_status",
    "probe_status",
]
