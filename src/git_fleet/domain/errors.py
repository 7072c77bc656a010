"""Errors that abort a whole invocation.

Per-repository failures are never raised; they are recorded in the
repository's ``ExecutionResult``.
"""

from typing import Sequence


class FleetError(Exception):
    """Base class for invocation-level errors."""


class ConfigurationError(FleetError):
    """The registry cannot satisfy the request."""


class GroupNotFoundError(ConfigurationError):
    def __init__(self, group_name: str):
        super().__init__(f"group not found: '{group_name}'")
        self.group_name = group_name


class RepositoryNotFoundError(ConfigurationError):
    def __init__(self, repo_name: str, group_name: str = ""):
        if group_name:
            message = f"group '{group_name}' references unknown repository '{repo_name}'"
        else:
            message = f"repository not found: '{repo_name}'"
        super().__init__(message)
        self.repo_name = repo_name
        self.group_name = group_name


class ConfigFileError(ConfigurationError):
    """The configuration document is missing or malformed."""


class NoTargetsError(FleetError):
    def __init__(self, group_names: Sequence[str] = ()):
        if group_names:
            message = f"no repositories found for groups: {', '.join(group_names)}"
        else:
            message = "no repositories to operate on"
        super().__init__(message)
        self.group_names = list(group_names)


class UsageError(FleetError):
    """The command line does not match the grammar."""


__all__ = [
    "FleetError",
    "ConfigurationError",
    "GroupNotFoundError",
    "RepositoryNotFoundError",
    "ConfigFileError",
    "NoTargetsError",
    "UsageError",
]
