"""Domain models, group resolution and status parsing."""

from .commands import Command, CommandKind, Operation, StatusProbe
from .errors import (
    ConfigFileError,
    ConfigurationError,
    FleetError,
    GroupNotFoundError,
    NoTargetsError,
    RepositoryNotFoundError,
    UsageError,
)
from .models import ExecutionResult, ExecutionState, Group, Repository, RepoStatus, Summary
from .porcelain import ChangeCounts, classify, parse_porcelain
from .registry import RepositoryRegistry, resolve_all, resolve_targets
from .requests import ExecuteRequest, GotoRequest, Request, StatusRequest

__all__ = [
    "Command",
    "CommandKind",
    "Operation",
    "StatusProbe",
    "FleetError",
    "ConfigurationError",
    "GroupNotFoundError",
    "RepositoryNotFoundError",
    "ConfigFileError",
    "NoTargetsError",
    "UsageError",
    "ExecutionResult",
    "ExecutionState",
    "Group",
    "Repository",
    "RepoStatus",
    "Summary",
    "ChangeCounts",
    "classify",
    "parse_porcelain",
    "RepositoryRegistry",
    "resolve_all",
    "resolve_targets",
    "ExecuteRequest",
    "GotoRequest",
    "Request",
    "StatusRequest",
]
