# 日志输出模块：提供统一的日志输出功能
#
# 主要功能：
#   - log_info() / log_success()：输出到 stdout
#   - log_warning() / log_error() / log_debug()：输出到 stderr
#   - log_debug()：仅在 set_verbose(True) 之后输出
#
# 特性：
#   - 带时间戳
#   - 终端支持时使用 colorama 着色

import sys
import threading
from datetime import datetime
from typing import TextIO

import colorama
from colorama import Fore, Style

colorama.just_fix_windows_console()

_print_lock = threading.Lock()
_verbose = False


def set_verbose(enabled: bool) -> None:
    """开启或关闭 debug 日志"""
    global _verbose
    _verbose = bool(enabled)


def _get_timestamp() -> str:
    """获取时间戳"""
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


def _use_color(stream: TextIO) -> bool:
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def _format_message(level: str, color: str, message: str, stream: TextIO) -> str:
    """格式化日志消息"""
    timestamp = _get_timestamp()
    if _use_color(stream):
        return f"{color}[{level}]{Style.RESET_ALL} [{timestamp}] {message}"
    return f"[{level}] [{timestamp}] {message}"


def _emit(level: str, color: str, message: str, stream: TextIO) -> None:
    # Worker threads log concurrently; keep lines whole.
    with _print_lock:
        print(_format_message(level, color, message, stream), file=stream, flush=True)


def log_info(message: str) -> None:
    """输出信息日志"""
    _emit("INFO", Fore.CYAN, message, sys.stdout)


def log_success(message: str) -> None:
    """输出成功日志"""
    _emit("SUCCESS", Fore.GREEN, message, sys.stdout)


def log_warning(message: str) -> None:
    """输出警告日志（输出到 stderr，保持 stdout 可被解析）"""
    _emit("WARNING", Fore.YELLOW, message, sys.stderr)


def log_error(message: str) -> None:
    """输出错误日志（输出到 stderr）"""
    _emit("ERROR", Fore.RED, message, sys.stderr)


def log_debug(message: str) -> None:
    """输出调试日志"""
    if _verbose:
        _emit("DEBUG", Style.DIM, message, sys.stderr)


__all__ = [
    "set_verbose",
    "log_info",
    "log_success",
    "log_warning",
    "log_error",
    "log_debug",
]
