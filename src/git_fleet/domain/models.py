"""Domain data structures."""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class RepoStatus(Enum):
    """Working-tree state of a repository after a status probe."""

    CLEAN = "Clean"
    MODIFIED = "Modified"
    ERROR = "Error"


class ExecutionState(Enum):
    """Terminal state of one repository's task."""

    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"
    TIMEOUT = "timeout"


@dataclass
class Repository:
    """A configured repository, updated in place by the status probe."""

    name: str
    path: str
    is_valid: bool = False
    branch: str = ""
    status: RepoStatus = RepoStatus.ERROR
    created_files: int = 0
    modified_files: int = 0
    deleted_files: int = 0
    error_message: str = ""

    @property
    def has_changes(self) -> bool:
        return self.created_files > 0 or self.modified_files > 0 or self.deleted_files > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "path": self.path,
            "isValid": self.is_valid,
            "branch": self.branch,
            "status": self.status.value,
            "createdFiles": self.created_files,
            "modifiedFiles": self.modified_files,
            "deletedFiles": self.deleted_files,
            "errorMessage": self.error_message,
        }


@dataclass(frozen=True)
class Group:
    """A named, ordered set of repository names."""

    name: str
    repositories: Tuple[str, ...] = ()

    def __contains__(self, repo_name: object) -> bool:
        return repo_name in self.repositories

    def __len__(self) -> int:
        return len(self.repositories)


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of running one command against one repository."""

    repository: str
    command: str
    state: ExecutionState
    output: str = ""
    error_message: str = ""
    exit_code: int = -1
    duration: float = 0.0
    finished_at: float = 0.0

    @classmethod
    def finished(
        cls,
        repository: str,
        command: str,
        state: ExecutionState,
        started: float,
        **kwargs: Any,
    ) -> "ExecutionResult":
        """Build a result ending now, for a task that began at ``started`` (monotonic)."""
        now = time.monotonic()
        return cls(
            repository=repository,
            command=command,
            state=state,
            duration=max(0.0, now - started),
            finished_at=now,
            **kwargs,
        )

    @property
    def success(self) -> bool:
        return self.state is ExecutionState.SUCCESS

    @property
    def failed(self) -> bool:
        """Failed outright or ran past the shared deadline."""
        return self.state in (ExecutionState.FAILED, ExecutionState.TIMEOUT)

    @property
    def cancelled(self) -> bool:
        return self.state is ExecutionState.CANCELLED

    @property
    def timed_out(self) -> bool:
        return self.state is ExecutionState.TIMEOUT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "repository": self.repository,
            "command": self.command,
            "output": self.output,
            "errorMessage": self.error_message,
            "exitCode": self.exit_code,
            "durationMs": int(round(self.duration * 1000)),
            "state": self.state.value,
        }


@dataclass(frozen=True)
class Summary:
    """Results of one invocation, in resolved target order."""

    results: Tuple[ExecutionResult, ...]
    total_duration: float
    repositories: Tuple[Repository, ...] = field(default=())

    @property
    def total_count(self) -> int:
        return len(self.results)

    @property
    def successful_count(self) -> int:
        return sum(1 for result in self.results if result.success)

    @property
    def failed_count(self) -> int:
        return sum(1 for result in self.results if result.failed)

    @property
    def cancelled_count(self) -> int:
        return sum(1 for result in self.results if result.cancelled)

    @property
    def timeout_count(self) -> int:
        return sum(1 for result in self.results if result.timed_out)

    @property
    def has_failures(self) -> bool:
        return self.successful_count < self.total_count

    @property
    def success_rate(self) -> float:
        if not self.results:
            return 0.0
        return self.successful_count / self.total_count * 100

    def result_for(self, repo_name: str) -> Optional[ExecutionResult]:
        for result in self.results:
            if result.repository == repo_name:
                return result
        return None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "results": [result.to_dict() for result in self.results],
            "totalCount": self.total_count,
            "successfulCount": self.successful_count,
            "failedCount": self.failed_count,
            "cancelledCount": self.cancelled_count,
            "totalDurationMs": int(round(self.total_duration * 1000)),
        }
        if self.repositories:
            data["repositories"] = [repo.to_dict() for repo in self.repositories]
        return data


__all__: List[str] = [
    "RepoStatus",
    "ExecutionState",
    "Repository",
    "Group",
    "ExecutionResult",
    "Summary",
]
