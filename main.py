#!/usr/bin/env python3
# git-fleet 命令行入口：对分组中的本地仓库并行执行同一条 git / shell 命令
#
# 主要功能：
#   - 解析命令行参数（-t 并行任务数，--timeout 批次超时）
#   - 读取 .gfconfig.json 配置文件
#   - 把请求交给应用层执行（status / goto / 批量命令）
#   - 输出每个仓库的结果和最终统计报告（或 --json）
#
# 执行流程：
#   1. 解析命令行参数
#   2. 加载配置文件
#   3. 解析请求
#   4. 并行执行
#   5. 输出统计报告，返回退出码
#
# 退出码：
#   0 成功；1 配置/用法错误或有仓库失败（--allow-failure 时为 0）；130 被 Ctrl-C 中断

import json
import sys
from typing import List, Optional, Sequence

from git_fleet.application.execution import (
    EXIT_FAILURE,
    EXIT_INTERRUPTED,
    RequestOutcome,
    RunOptions,
    handle_request,
)
from git_fleet.core.repo_config import load_registry
from git_fleet.domain.errors import FleetError
from git_fleet.domain.models import ExecutionResult, Repository, RepoStatus, Summary
from git_fleet.domain.requests import GotoRequest
from git_fleet.infra.logger import log_error, log_info, log_success, log_warning, set_verbose
from git_fleet.ui.args import build_parser, interpret, parse_args

OUTPUT_INDENT = "    "


def format_duration(seconds: float) -> str:
    """把秒数格式化为易读的耗时"""
    if seconds < 60:
        return f"{seconds:.2f}s"
    whole = int(seconds)
    hours = whole // 3600
    minutes = (whole % 3600) // 60
    secs = whole % 60
    if hours:
        return f"{hours}h {minutes}m {secs}s"
    return f"{minutes}m {secs}s"


def indent_output(output: str) -> List[str]:
    return [f"{OUTPUT_INDENT}{line}" for line in output.rstrip().splitlines()]


def print_result(result: ExecutionResult) -> None:
    """输出单个仓库的执行结果"""
    duration = format_duration(result.duration)
    if result.success:
        log_success(f"{result.repository}: {result.command} ({duration})")
    elif result.cancelled:
        log_warning(f"{result.repository}: {result.error_message} ({duration})")
    else:
        log_error(f"{result.repository}: {result.error_message or result.state.value} ({duration})")

    for line in indent_output(result.output):
        print(line)


def print_repository_status(repo: Repository) -> None:
    """输出单个仓库的状态行"""
    if repo.status is RepoStatus.ERROR:
        log_error(f"{repo.name}: {repo.status.value} - {repo.error_message}")
        return

    line = (
        f"{repo.name}: [{repo.branch or '-'}] {repo.status.value} "
        f"+{repo.created_files} ~{repo.modified_files} -{repo.deleted_files}"
    )
    if repo.status is RepoStatus.CLEAN:
        log_success(line)
    else:
        log_info(line)


def print_summary(summary: Summary) -> None:
    """输出最终统计"""
    print()
    log_info("========== Summary ==========")
    log_info(f"Total: {summary.total_count}")
    log_success(f"Successful: {summary.successful_count}")

    if summary.failed_count > 0:
        log_error(f"Failed: {summary.failed_count}")
    else:
        log_info(f"Failed: {summary.failed_count}")

    if summary.cancelled_count > 0:
        log_warning(f"Cancelled: {summary.cancelled_count}")

    log_info(f"Duration: {format_duration(summary.total_duration)}")
    log_info("=============================")


def print_report(summary: Summary) -> None:
    if summary.repositories:
        for repo in summary.repositories:
            print_repository_status(repo)
    else:
        for result in summary.results:
            print_result(result)
    print_summary(summary)


def print_json(summary: Summary) -> None:
    print(json.dumps(summary.to_dict(), indent=2, ensure_ascii=False))


def present(outcome: RequestOutcome, request: object, as_json: bool) -> int:
    if outcome.error:
        log_error(outcome.error)
        return outcome.exit_code

    if isinstance(request, GotoRequest):
        print(outcome.path)
        return outcome.exit_code

    if outcome.summary is not None:
        if as_json:
            print_json(outcome.summary)
        else:
            print_report(outcome.summary)

    if outcome.interrupted:
        log_warning("interrupted, remaining tasks were cancelled")
    return outcome.exit_code


def main(argv: Optional[Sequence[str]] = None) -> int:
    """主函数

    Returns:
        退出码（0 成功，1 失败，130 中断）
    """
    args = parse_args(argv)
    set_verbose(args.verbose)

    if not args.request:
        build_parser().print_help()
        return EXIT_FAILURE

    try:
        registry = load_registry(args.config)
        request = interpret(args.request, registry.group_names, allow_failure=args.allow_failure)
    except FleetError as exc:
        log_error(str(exc))
        return EXIT_FAILURE
    except KeyboardInterrupt:
        return EXIT_INTERRUPTED

    options = RunOptions(parallel_tasks=args.tasks, timeout=args.timeout or None)
    try:
        outcome = handle_request(request, registry, options)
    except KeyboardInterrupt:
        log_warning("interrupted")
        return EXIT_INTERRUPTED

    return present(outcome, request, args.json)


if __name__ == "__main__":
    sys.exit(main())
