"""What to run inside each repository: git or shell command, or the status probe."""

import shlex
from dataclasses import dataclass
from enum import Enum
from typing import List, Sequence, Tuple, Union


GIT_SUBCOMMANDS = frozenset(
    {
        "add",
        "branch",
        "checkout",
        "commit",
        "diff",
        "fetch",
        "log",
        "merge",
        "pull",
        "push",
        "rebase",
        "remote",
        "reset",
        "stash",
        "status",
        "tag",
    }
)

SHELL_OPERATORS = ("&&", "||", "|", ";", ">", "<", "$", "`", '"', "'")


def _shell_word(arg: str) -> str:
    if any(char.isspace() for char in arg) and not any(op in arg for op in SHELL_OPERATORS):
        return shlex.quote(arg)
    return arg


class CommandKind(Enum):
    GIT = "git"
    SHELL = "shell"


@dataclass(frozen=True)
class Command:
    """A git or shell command as typed by the operator."""

    args: Tuple[str, ...]
    kind: CommandKind

    @classmethod
    def from_args(cls, args: Sequence[str]) -> "Command":
        """Detect the command kind from its first arguments.

        ``pull --rebase`` and ``git pull --rebase`` are git commands, run as
        ``git pull --rebase``; everything else runs as a shell command.
        """
        args = tuple(arg for arg in args if arg.strip())
        if not args:
            raise ValueError("command arguments cannot be empty")
        head = args[0].split()[0]
        if head == "git" or head in GIT_SUBCOMMANDS:
            return cls(args=args, kind=CommandKind.GIT)
        return cls(args=args, kind=CommandKind.SHELL)

    @property
    def line(self) -> str:
        """The command as one string, exactly as it will appear in results.

        The first argument is taken as typed, so a single argument can be a
        whole shell line. A later argument with whitespace but no shell
        operator is quoted so it stays one word; operators typed as separate
        arguments (``&&``, ``|``) are kept as they are.
        """
        argv = self.argv
        if not self.requires_shell:
            return shlex.join(argv)
        prefix = argv[: len(argv) - len(self.args)]
        words = [self.args[0], *(_shell_word(arg) for arg in self.args[1:])]
        return " ".join([*prefix, *words])

    @property
    def argv(self) -> List[str]:
        if self.kind is CommandKind.GIT and self.args[0].split()[0] != "git":
            return ["git", *self.args]
        return list(self.args)

    @property
    def requires_shell(self) -> bool:
        if self.kind is CommandKind.SHELL:
            return True
        joined = " ".join(self.args)
        if any(operator in joined for operator in SHELL_OPERATORS):
            return True
        return len(self.args) == 1 and " " in self.args[0]

    def __str__(self) -> str:
        return self.line


STATUS_ARGV = ("git", "status", "--porcelain")
BRANCH_ARGV = ("git", "branch", "--show-current")


@dataclass(frozen=True)
class StatusProbe:
    """Classify each repository's working tree instead of running a user command."""

    @property
    def line(self) -> str:
        return " ".join(STATUS_ARGV)

    def __str__(self) -> str:
        return self.line


Operation = Union[Command, StatusProbe]


__all__ = [
    "StatusProbe",
    "Operation",
    "GIT_SUBCOMMANDS",
    "SHELL_OPERATORS",
    "CommandKind",
    "Command",
    "STATUS_ARGV",
    "BRANCH_ARGV",
]
