"""Process control for per-repository command execution and cancellation."""

import os
import platform
import signal
import subprocess
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Set, Union

from ..infra.logger import log_debug


IS_WINDOWS = platform.system() == "Windows"

# How long a blocked wait may go before re-checking the scope.
POLL_INTERVAL = 0.05
TERMINATE_GRACE = 2.0


class StopReason(Enum):
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"


class CancelScope:
    """Shared deadline and cancellation flag for one batch of processes.

    Every process started under the scope is tracked; ``cancel()`` terminates
    all of them. Expiry of the deadline is observed by the runners, which
    terminate their own process.
    """

    def __init__(self, timeout: Optional[float] = None):
        self._cancelled = threading.Event()
        self._processes: Set[subprocess.Popen] = set()
        self._stopped: Set[subprocess.Popen] = set()
        self._lock = threading.Lock()
        self.deadline: Optional[float] = None
        if timeout is not None and timeout > 0:
            self.deadline = time.monotonic() + timeout

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    def remaining(self) -> Optional[float]:
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def stop_reason(self) -> Optional[StopReason]:
        """Why work under this scope must stop, or None to keep going."""
        if self.cancelled:
            return StopReason.CANCELLED
        if self.expired:
            return StopReason.TIMEOUT
        return None

    def track(self, process: subprocess.Popen) -> None:
        with self._lock:
            self._processes.add(process)

    def untrack(self, process: subprocess.Popen) -> None:
        with self._lock:
            self._processes.discard(process)

    @property
    def active_process_count(self) -> int:
        with self._lock:
            return len(self._processes)

    def cancel(self) -> None:
        """Signal cancellation and terminate every running tracked process."""
        self._cancelled.set()
        with self._lock:
            processes = list(self._processes)

        for process in processes:
            if not process_running(process):
                continue
            # recorded before the kill so the runner sees it once its pipe closes
            with self._lock:
                self._stopped.add(process)
            terminate_process(process)

    def was_stopped(self, process: subprocess.Popen) -> bool:
        """Whether ``cancel()`` terminated ``process`` while it was still running."""
        with self._lock:
            return process in self._stopped


@dataclass(frozen=True)
class ProcessOutcome:
    """Captured result of one external command."""

    output: str
    exit_code: int
    duration: float
    stop_reason: Optional[StopReason] = None

    @property
    def stopped(self) -> bool:
        return self.stop_reason is not None

    @property
    def ok(self) -> bool:
        return self.stop_reason is None and self.exit_code == 0


def background_subprocess_kwargs() -> Dict[str, Any]:
    """Return kwargs that put the child in its own process group.

    The group lets termination reach grandchildren started by a shell. On
    Windows the console window is hidden as well.
    """
    if not IS_WINDOWS:
        return {"start_new_session": True}

    startupinfo = subprocess.STARTUPINFO()
    startupinfo.dwFlags |= subprocess.STARTF_USESHOWWINDOW
    startupinfo.wShowWindow = subprocess.SW_HIDE
    return {
        "startupinfo": startupinfo,
        "creationflags": subprocess.CREATE_NO_WINDOW | subprocess.CREATE_NEW_PROCESS_GROUP,
    }


def start_tracked_process(command, scope: CancelScope, **kwargs) -> subprocess.Popen:
    """Start a subprocess in its own process group and track it on ``scope``."""
    popen_kwargs = dict(kwargs)
    for key, value in background_subprocess_kwargs().items():
        popen_kwargs.setdefault(key, value)

    process = subprocess.Popen(command, **popen_kwargs)
    scope.track(process)
    return process


def _signal_group(process: subprocess.Popen, sig: int) -> None:
    try:
        os.killpg(process.pid, sig)
    except ProcessLookupError:
        # group already gone
        pass


def _group_alive(process: subprocess.Popen) -> bool:
    try:
        os.killpg(process.pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True


def process_running(process: subprocess.Popen) -> bool:
    """True while the process, or on POSIX any member of its group, is alive."""
    if process.poll() is None:
        return True
    return not IS_WINDOWS and _group_alive(process)


def _terminate_windows(process: subprocess.Popen, timeout: float) -> None:
    if process.poll() is not None:
        return

    subprocess.run(
        ["taskkill", "/F", "/T", "/PID", str(process.pid)],
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        check=False,
        **background_subprocess_kwargs(),
    )
    try:
        process.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        process.kill()
        process.wait()


def terminate_process(process: subprocess.Popen, timeout: float = TERMINATE_GRACE) -> None:
    """Terminate a process and its whole process group.

    SIGTERM first, SIGKILL if the group does not exit within ``timeout``.
    The group is signalled even when the direct child has already exited,
    since background children of a shell can outlive it. Safe to call more
    than once and from several threads.
    """
    if IS_WINDOWS:
        _terminate_windows(process, timeout)
        return

    deadline = time.monotonic() + timeout
    _signal_group(process, signal.SIGTERM)
    try:
        process.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        pass

    while _group_alive(process) and time.monotonic() < deadline:
        time.sleep(POLL_INTERVAL)
    if _group_alive(process):
        _signal_group(process, signal.SIGKILL)
    process.wait()


def _wait_slice(scope: CancelScope) -> float:
    remaining = scope.remaining()
    if remaining is None:
        return POLL_INTERVAL
    # never 0: communicate(timeout=0) would spin without reading
    return max(0.001, min(POLL_INTERVAL, remaining))


def run_command(
    cwd: str,
    command: Union[Sequence[str], str],
    scope: CancelScope,
    shell: bool = False,
) -> ProcessOutcome:
    """Run one command in ``cwd`` under ``scope``.

    stdout and stderr are captured together. A non-zero exit code is returned
    as data. When the scope is cancelled or its deadline passes, the process
    group is terminated and the outcome carries the stop reason. Launch
    errors (``OSError``) propagate.
    """
    started = time.monotonic()
    reason = scope.stop_reason()
    if reason is not None:
        return ProcessOutcome(output="", exit_code=-1, duration=0.0, stop_reason=reason)

    if not shell:
        command = list(command)
    log_debug(f"run in {cwd}: {command}")

    process = start_tracked_process(
        command,
        scope,
        cwd=cwd,
        shell=shell,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        encoding="utf-8",
        errors="replace",
    )
    try:
        while True:
            try:
                output, _ = process.communicate(timeout=_wait_slice(scope))
                break
            except subprocess.TimeoutExpired:
                reason = scope.stop_reason()
                if reason is None:
                    continue
                terminate_process(process)
                try:
                    output, _ = process.communicate(timeout=TERMINATE_GRACE)
                except subprocess.TimeoutExpired:
                    # a detached grandchild still holds the pipe open
                    output = ""
                return ProcessOutcome(
                    output=output or "",
                    exit_code=process.returncode if process.returncode is not None else -1,
                    duration=time.monotonic() - started,
                    stop_reason=reason,
                )
    finally:
        scope.untrack(process)

    # cancel() may have killed the process between two polls
    reason = StopReason.CANCELLED if scope.was_stopped(process) else None
    return ProcessOutcome(
        output=output or "",
        exit_code=process.returncode,
        duration=time.monotonic() - started,
        stop_reason=reason,
    )


__all__ = [
    "IS_WINDOWS",
    "POLL_INTERVAL",
    "StopReason",
    "CancelScope",
    "ProcessOutcome",
    "background_subprocess_kwargs",
    "start_tracked_process",
    "process_running",
    "terminate_process",
    "run_command",
]
