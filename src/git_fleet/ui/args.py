# 命令行参数解析模块
#
# 主要功能：
#   - parse_args()：解析全局选项，请求部分原样保留
#   - interpret()：把请求部分转换为 StatusRequest / GotoRequest / ExecuteRequest
#
# 语法：
#   gf [选项] status [@group ...]
#   gf [选项] goto <repository>
#   gf [选项] @g1 [@g2 ...] <command ...>
#   gf [选项] <group> <command ...>      # 兼容旧写法，仅当 <group> 是已配置分组

import argparse
from typing import Collection, List, Optional, Sequence, Tuple

from ..application.execution import DEFAULT_TIMEOUT
from ..core.executor import DEFAULT_PARALLEL_TASKS
from ..domain.commands import Command
from ..domain.errors import UsageError
from ..domain.requests import ExecuteRequest, GotoRequest, Request, StatusRequest

DEFAULT_TASKS = DEFAULT_PARALLEL_TASKS
GROUP_PREFIX = "@"
STATUS_WORD = "status"
GOTO_WORD = "goto"
RESERVED_WORDS = (STATUS_WORD, GOTO_WORD)


def validate_positive_int(value: str) -> int:
    """验证参数为正整数且 >= 1"""
    try:
        num = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"must be an integer: {value}")
    if num < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer >= 1: {value}")
    return num


def validate_non_negative_float(value: str) -> float:
    """验证参数为非负数（0 表示不限制）"""
    try:
        num = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"must be a number: {value}")
    if num < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0: {value}")
    return num


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gf",
        description="Run one git or shell command across groups of local repositories",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
examples:
  %(prog)s status                       # status of every configured repository
  %(prog)s status @frontend             # status of one group
  %(prog)s @frontend @backend pull      # git pull in both groups
  %(prog)s -t 4 @backend "make test"    # shell command, 4 repositories at a time
  %(prog)s goto api                     # print the path of repository 'api'

options must come before the request; everything after it belongs to the command.
        """,
    )

    parser.add_argument(
        "-c", "--config",
        default=None,
        metavar="FILE",
        help="configuration file (default: $GF_CONFIG or <config dir>/git-fleet/.gfconfig.json)",
    )
    parser.add_argument(
        "-t", "--tasks",
        type=validate_positive_int,
        default=DEFAULT_TASKS,
        metavar="NUM",
        help=f"repositories processed at the same time (default: {DEFAULT_TASKS})",
    )
    parser.add_argument(
        "--timeout",
        type=validate_non_negative_float,
        default=DEFAULT_TIMEOUT,
        metavar="SECONDS",
        help=f"deadline for the whole batch, 0 disables it (default: {DEFAULT_TIMEOUT:g})",
    )
    parser.add_argument(
        "--allow-failure",
        action="store_true",
        help="exit 0 even if some repositories failed",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="print the results as JSON",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="print debug logs to stderr",
    )
    parser.add_argument(
        "request",
        nargs=argparse.REMAINDER,
        metavar="REQUEST",
        help="status [@group ...] | goto <repository> | @group [...] <command ...>",
    )
    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """解析命令行参数"""
    return build_parser().parse_args(argv)


def _group_token(token: str) -> str:
    name = token[len(GROUP_PREFIX):]
    if not name:
        raise UsageError(f"empty group name in {token!r}")
    return name


def _split_groups(tokens: Sequence[str]) -> Tuple[List[str], List[str]]:
    """Split leading ``@group`` tokens from the rest."""
    groups: List[str] = []
    index = 0
    while index < len(tokens) and tokens[index].startswith(GROUP_PREFIX):
        groups.append(_group_token(tokens[index]))
        index += 1
    return groups, list(tokens[index:])


def _status_request(rest: Sequence[str]) -> StatusRequest:
    groups, leftover = _split_groups(rest)
    if leftover:
        raise UsageError(f"status only accepts @group arguments, got {leftover[0]!r}")
    return StatusRequest(groups=tuple(groups))


def _goto_request(rest: Sequence[str]) -> GotoRequest:
    if len(rest) != 1:
        raise UsageError("goto expects exactly one repository name")
    return GotoRequest(repository=rest[0])


def interpret(
    tokens: Sequence[str],
    known_groups: Collection[str],
    allow_failure: bool = False,
) -> Request:
    """Turn the request tokens into exactly one request.

    Reserved words are matched first, so a group named ``status`` can only be
    addressed as ``@status``. The ``<group> <command>`` form is accepted only
    for configured groups; any other leading word is rejected.
    """
    tokens = list(tokens)
    if not tokens:
        raise UsageError("missing request: expected 'status', 'goto <repository>' or '@group <command>'")

    head, rest = tokens[0], tokens[1:]
    if head == STATUS_WORD:
        return _status_request(rest)
    if head == GOTO_WORD:
        return _goto_request(rest)

    if head.startswith(GROUP_PREFIX):
        groups, command_args = _split_groups(tokens)
    elif head in known_groups:
        groups, command_args = [head], rest
    else:
        raise UsageError(f"unknown command or group: {head!r}")

    if not command_args:
        raise UsageError(f"missing command for groups: {', '.join(groups)}")
    try:
        command = Command.from_args(command_args)
    except ValueError as exc:
        raise UsageError(str(exc)) from exc
    return ExecuteRequest(groups=tuple(groups), command=command, allow_failure=allow_failure)


__all__ = [
    "DEFAULT_TASKS",
    "DEFAULT_TIMEOUT",
    "RESERVED_WORDS",
    "validate_positive_int",
    "validate_non_negative_float",
    "build_parser",
    "parse_args",
    "interpret",
]
