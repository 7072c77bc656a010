import os
import shlex
import sys
import threading
import time

import pytest

from git_fleet.core.process_control import CancelScope, StopReason, run_command

SLEEPER = (
    "import os, sys, time\n"
    "with open(sys.argv[1], 'w') as fh:\n"
    "    fh.write(str(os.getpid()))\n"
    "time.sleep(30)\n"
)

posix_only = pytest.mark.skipif(os.name == "nt", reason="POSIX process groups")


def _running(pid):
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    try:
        with open(f"/proc/{pid}/stat") as fh:
            stat = fh.read()
    except FileNotFoundError:
        # no procfs, or the process vanished after the kill check
        return not os.path.isdir("/proc/self")
    # zombies are dead, only waiting to be reaped
    return stat.rsplit(")", 1)[1].split()[0] != "Z"


def _wait_gone(pid, timeout=5.0):
    deadline = time.monotonic() + timeout
    while _running(pid) and time.monotonic() < deadline:
        time.sleep(0.05)
    return not _running(pid)


def _background_sleeper_line(tmp_path):
    script = tmp_path / "sleeper.py"
    script.write_text(SLEEPER, encoding="utf-8")
    pid_file = tmp_path / "background.pid"
    line = (
        f"{shlex.quote(sys.executable)} {shlex.quote(str(script))} {shlex.quote(str(pid_file))} "
        "& sleep 0.2"
    )
    return line, pid_file


def test_run_command_captures_output_and_exit_code(tmp_path):
    outcome = run_command(str(tmp_path), [sys.executable, "-c", "print('hello')"], CancelScope())

    assert outcome.ok
    assert outcome.exit_code == 0
    assert outcome.output.strip() == "hello"
    assert outcome.stop_reason is None


def test_run_command_merges_stderr_and_returns_nonzero_exit_as_data(tmp_path):
    script = "import sys; print('out'); sys.stdout.flush(); sys.stderr.write('oops\\n'); sys.exit(3)"

    outcome = run_command(str(tmp_path), [sys.executable, "-c", script], CancelScope())

    assert not outcome.ok
    assert not outcome.stopped
    assert outcome.exit_code == 3
    assert "out" in outcome.output
    assert "oops" in outcome.output


def test_run_command_runs_in_repository_directory(tmp_path):
    script = "import os; print(os.getcwd())"

    outcome = run_command(str(tmp_path), [sys.executable, "-c", script], CancelScope())

    assert os.path.samefile(outcome.output.strip(), str(tmp_path))


def test_run_command_timeout_terminates_process(tmp_path):
    pid_file = tmp_path / "child.pid"
    scope = CancelScope(timeout=0.5)

    started = time.monotonic()
    outcome = run_command(str(tmp_path), [sys.executable, "-c", SLEEPER, str(pid_file)], scope)
    elapsed = time.monotonic() - started

    assert outcome.stop_reason is StopReason.TIMEOUT
    assert not outcome.ok
    assert elapsed < 10
    assert scope.active_process_count == 0


@posix_only
def test_run_command_timeout_leaves_no_child_running(tmp_path):
    pid_file = tmp_path / "child.pid"

    run_command(str(tmp_path), [sys.executable, "-c", SLEEPER, str(pid_file)], CancelScope(timeout=3.0))

    pid = int(pid_file.read_text())
    with pytest.raises(ProcessLookupError):
        os.kill(pid, 0)


def test_run_command_cancel_from_another_thread(tmp_path):
    pid_file = tmp_path / "child.pid"
    scope = CancelScope()
    timer = threading.Timer(0.3, scope.cancel)
    timer.start()
    try:
        started = time.monotonic()
        outcome = run_command(str(tmp_path), [sys.executable, "-c", SLEEPER, str(pid_file)], scope)
        elapsed = time.monotonic() - started
    finally:
        timer.cancel()

    assert outcome.stop_reason is StopReason.CANCELLED
    assert elapsed < 10
    assert scope.active_process_count == 0


def test_run_command_on_cancelled_scope_does_not_start(tmp_path):
    marker = tmp_path / "ran"
    scope = CancelScope()
    scope.cancel()

    outcome = run_command(
        str(tmp_path),
        [sys.executable, "-c", f"open({str(marker)!r}, 'w').close()"],
        scope,
    )

    assert outcome.stop_reason is StopReason.CANCELLED
    assert outcome.exit_code == -1
    assert not marker.exists()


def test_cancel_takes_priority_over_expired_deadline():
    scope = CancelScope(timeout=0.01)
    time.sleep(0.05)
    assert scope.stop_reason() is StopReason.TIMEOUT

    scope.cancel()
    assert scope.stop_reason() is StopReason.CANCELLED


def test_zero_timeout_means_no_deadline():
    scope = CancelScope(timeout=0)

    assert scope.deadline is None
    assert scope.remaining() is None
    assert scope.stop_reason() is None


@posix_only
def test_run_command_through_shell(tmp_path):
    outcome = run_command(str(tmp_path), "echo one && echo two", CancelScope(), shell=True)

    assert outcome.ok
    assert outcome.output.split() == ["one", "two"]


def test_run_command_launch_error_propagates(tmp_path):
    scope = CancelScope()

    with pytest.raises(OSError):
        run_command(str(tmp_path / "missing"), [sys.executable, "-c", "pass"], scope)

    assert scope.active_process_count == 0


@posix_only
def test_run_command_timeout_kills_background_child_after_shell_exits(tmp_path):
    line, pid_file = _background_sleeper_line(tmp_path)

    outcome = run_command(str(tmp_path), line, CancelScope(timeout=2.0), shell=True)

    assert outcome.stop_reason is StopReason.TIMEOUT
    pid = int(pid_file.read_text())
    assert _wait_gone(pid)


@posix_only
def test_cancel_kills_background_child_after_shell_exits(tmp_path):
    line, pid_file = _background_sleeper_line(tmp_path)
    scope = CancelScope()
    timer = threading.Timer(1.5, scope.cancel)
    timer.start()
    try:
        outcome = run_command(str(tmp_path), line, scope, shell=True)
    finally:
        timer.cancel()

    assert outcome.stop_reason is StopReason.CANCELLED
    pid = int(pid_file.read_text())
    assert _wait_gone(pid)
    assert scope.active_process_count == 0
