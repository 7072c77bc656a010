"""The closed set of requests the command line can produce."""

from dataclasses import dataclass
from typing import Tuple, Union

from .commands import Command


@dataclass(frozen=True)
class StatusRequest:
    """Probe working trees; no groups means every configured repository."""

    groups: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ExecuteRequest:
    groups: Tuple[str, ...]
    command: Command
    allow_failure: bool = False


@dataclass(frozen=True)
class GotoRequest:
    """Print a repository's path so a shell wrapper can ``cd`` into it."""

    repository: str


Request = Union[StatusRequest, ExecuteRequest, GotoRequest]


__all__ = ["StatusRequest", "ExecuteRequest", "GotoRequest", "Request"]
