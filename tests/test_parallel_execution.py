import os
import threading
import time

import pytest

from git_fleet.core.executor import execute_parallel
from git_fleet.core.process_control import CancelScope, ProcessOutcome
from git_fleet.domain.commands import Command, StatusProbe
from git_fleet.domain.errors import NoTargetsError
from git_fleet.domain.models import ExecutionState, Repository

RUNNER = "git_fleet.core.executor.run_command"


def _ok(output="done\n"):
    return ProcessOutcome(output=output, exit_code=0, duration=0.0)


def _wait_for_stop(scope):
    while scope.stop_reason() is None:
        time.sleep(0.01)
    return ProcessOutcome(output="", exit_code=-15, duration=0.0, stop_reason=scope.stop_reason())


def test_execute_parallel_returns_one_result_per_target(monkeypatch, make_repo):
    monkeypatch.setattr(RUNNER, lambda cwd, command, scope, shell=False: _ok())
    targets = [make_repo(f"repo{i}") for i in range(5)]

    summary = execute_parallel(targets, Command.from_args(["fetch"]), parallel_tasks=2)

    assert summary.total_count == 5
    assert summary.successful_count == 5
    assert not summary.has_failures
    assert [result.repository for result in summary.results] == [repo.name for repo in targets]
    assert all(result.command == "git fetch" for result in summary.results)
    assert all(result.output == "done\n" for result in summary.results)


def test_execute_parallel_results_follow_target_order_not_completion_order(monkeypatch, make_repo):
    delays = {"slow": 0.3, "medium": 0.15, "fast": 0.0}

    def fake_run(cwd, command, scope, shell=False):
        time.sleep(delays[os.path.basename(cwd)])
        return _ok()

    monkeypatch.setattr(RUNNER, fake_run)
    targets = [make_repo("slow"), make_repo("medium"), make_repo("fast")]

    summary = execute_parallel(targets, Command.from_args(["pull"]), parallel_tasks=3)

    assert [result.repository for result in summary.results] == ["slow", "medium", "fast"]


def test_execute_parallel_invalid_path_fails_only_that_repository(monkeypatch, make_repo, tmp_path):
    calls = []

    def fake_run(cwd, command, scope, shell=False):
        calls.append(cwd)
        return _ok()

    monkeypatch.setattr(RUNNER, fake_run)
    targets = [
        make_repo("a"),
        Repository(name="missing", path=str(tmp_path / "does-not-exist")),
        make_repo("b"),
    ]

    summary = execute_parallel(targets, Command.from_args(["pull"]))

    assert summary.successful_count == 2
    assert summary.failed_count == 1
    missing = summary.result_for("missing")
    assert missing.state is ExecutionState.FAILED
    assert "does-not-exist" in missing.error_message
    assert len(calls) == 2


def test_execute_parallel_nonzero_exit_is_failed_with_reason(monkeypatch, make_repo):
    def fake_run(cwd, command, scope, shell=False):
        if cwd.endswith("bad"):
            return ProcessOutcome(
                output="fatal: Could not resolve host: example.com\n", exit_code=128, duration=0.0
            )
        return _ok()

    monkeypatch.setattr(RUNNER, fake_run)
    targets = [make_repo("good"), make_repo("bad")]

    summary = execute_parallel(targets, Command.from_args(["pull"]))

    bad = summary.result_for("bad")
    assert bad.state is ExecutionState.FAILED
    assert bad.exit_code == 128
    assert "network_error" in bad.error_message
    assert "Could not resolve host" in bad.output
    assert summary.result_for("good").success


def test_execute_parallel_shell_failure_gets_no_git_reason(monkeypatch, make_repo):
    monkeypatch.setattr(
        RUNNER,
        lambda cwd, command, scope, shell=False: ProcessOutcome(
            output="fatal: refusing to merge unrelated histories\n", exit_code=1, duration=0.0
        ),
    )

    shell_summary = execute_parallel([make_repo("a")], Command.from_args(["./sync.sh"]))
    git_summary = execute_parallel([make_repo("b")], Command.from_args(["pull"]))

    assert shell_summary.result_for("a").error_message == "exit code 1 [unknown]"
    assert git_summary.result_for("b").error_message == "exit code 1 [unrelated_histories]"


def test_execute_parallel_task_crash_is_isolated(monkeypatch, make_repo):
    def fake_run(cwd, command, scope, shell=False):
        if cwd.endswith("boom"):
            raise RuntimeError("exploded")
        return _ok()

    monkeypatch.setattr(RUNNER, fake_run)
    targets = [make_repo("ok1"), make_repo("boom"), make_repo("ok2")]

    summary = execute_parallel(targets, Command.from_args(["status"]))

    assert summary.total_count == 3
    assert summary.successful_count == 2
    assert summary.result_for("boom").state is ExecutionState.FAILED
    assert "exploded" in summary.result_for("boom").error_message


def test_execute_parallel_respects_concurrency_limit(monkeypatch, make_repo):
    lock = threading.Lock()
    state = {"active": 0, "peak": 0}

    def fake_run(cwd, command, scope, shell=False):
        with lock:
            state["active"] += 1
            state["peak"] = max(state["peak"], state["active"])
        time.sleep(0.05)
        with lock:
            state["active"] -= 1
        return _ok()

    monkeypatch.setattr(RUNNER, fake_run)
    targets = [make_repo(f"repo{i}") for i in range(8)]

    summary = execute_parallel(targets, Command.from_args(["fetch"]), parallel_tasks=3)

    assert summary.successful_count == 8
    assert 1 <= state["peak"] <= 3


def test_execute_parallel_runs_tasks_concurrently(monkeypatch, make_repo):
    def fake_run(cwd, command, scope, shell=False):
        time.sleep(0.3)
        return _ok()

    monkeypatch.setattr(RUNNER, fake_run)
    targets = [make_repo(f"repo{i}") for i in range(4)]

    summary = execute_parallel(targets, Command.from_args(["fetch"]), parallel_tasks=4)

    task_total = sum(result.duration for result in summary.results)
    assert summary.total_duration < task_total
    assert summary.total_duration >= max(result.duration for result in summary.results) - 0.01


def test_execute_parallel_shared_deadline_times_out_every_task(monkeypatch, make_repo):
    monkeypatch.setattr(RUNNER, lambda cwd, command, scope, shell=False: _wait_for_stop(scope))
    targets = [make_repo(f"repo{i}") for i in range(3)]

    started = time.monotonic()
    summary = execute_parallel(targets, Command.from_args(["sleep", "30"]), timeout=0.2)

    assert time.monotonic() - started < 5
    assert summary.timeout_count == 3
    assert summary.failed_count == 3
    assert all(result.error_message == "command execution timed out" for result in summary.results)


def test_execute_parallel_cancel_marks_remaining_tasks_cancelled(monkeypatch, make_repo):
    monkeypatch.setattr(RUNNER, lambda cwd, command, scope, shell=False: _wait_for_stop(scope))
    targets = [make_repo(f"repo{i}") for i in range(4)]
    scope = CancelScope()
    timer = threading.Timer(0.2, scope.cancel)
    timer.start()
    try:
        summary = execute_parallel(targets, Command.from_args(["pull"]), parallel_tasks=2, scope=scope)
    finally:
        timer.cancel()

    assert summary.total_count == 4
    assert summary.cancelled_count == 4
    assert summary.has_failures


def test_execute_parallel_on_cancelled_scope_starts_nothing(make_repo):
    targets = [make_repo("a"), make_repo("b")]
    scope = CancelScope()
    scope.cancel()

    summary = execute_parallel(targets, Command.from_args(["pull"]), scope=scope)

    assert summary.cancelled_count == 2
    assert all(result.exit_code == -1 for result in summary.results)


def test_execute_parallel_counts_always_add_up(monkeypatch, make_repo, tmp_path):
    def fake_run(cwd, command, scope, shell=False):
        if cwd.endswith("fails"):
            return ProcessOutcome(output="", exit_code=1, duration=0.0)
        return _ok()

    monkeypatch.setattr(RUNNER, fake_run)
    targets = [
        make_repo("ok"),
        make_repo("fails"),
        Repository(name="gone", path=str(tmp_path / "gone")),
    ]

    summary = execute_parallel(targets, Command.from_args(["make", "test"]))

    assert summary.successful_count + summary.failed_count + summary.cancelled_count == summary.total_count
    assert summary.successful_count == 1
    assert summary.failed_count == 2


def test_execute_parallel_shell_commands_use_shell(monkeypatch, make_repo):
    seen = []

    def fake_run(cwd, command, scope, shell=False):
        seen.append((command, shell))
        return _ok()

    monkeypatch.setattr(RUNNER, fake_run)

    execute_parallel([make_repo("a")], Command.from_args(["npm test && npm run lint"]))
    execute_parallel([make_repo("b")], Command.from_args(["pull", "--rebase"]))

    assert seen[0] == ("npm test && npm run lint", True)
    assert seen[1] == (["git", "pull", "--rebase"], False)


def test_execute_parallel_reports_progress(monkeypatch, make_repo):
    def fake_run(cwd, command, scope, shell=False):
        if cwd.endswith("-fail"):
            return ProcessOutcome(output="", exit_code=1, duration=0.0)
        return _ok()

    monkeypatch.setattr(RUNNER, fake_run)
    targets = [make_repo("repo1"), make_repo("repo2-fail"), make_repo("repo3")]

    progress_calls = []
    execute_parallel(
        targets,
        Command.from_args(["pull"]),
        parallel_tasks=2,
        progress_cb=lambda done, total, success, fail: progress_calls.append((done, total, success, fail)),
    )

    assert progress_calls[0] == (0, 3, 0, 0)
    assert len(progress_calls) == 4
    assert progress_calls[-1] == (3, 3, 2, 1)


def test_execute_parallel_status_probe_keeps_repositories(monkeypatch, make_repo):
    monkeypatch.setattr(
        "git_fleet.core.status.run_command",
        lambda cwd, command, scope, shell=False: _ok("main\n" if "branch" in command else ""),
    )
    targets = [make_repo("a"), make_repo("b")]

    summary = execute_parallel(targets, StatusProbe())

    assert [repo.name for repo in summary.repositories] == ["a", "b"]
    assert all(repo.branch == "main" for repo in summary.repositories)
    assert all(result.command == "git status --porcelain" for result in summary.results)


def test_execute_parallel_rejects_invalid_input(make_repo):
    repo = make_repo("a")

    with pytest.raises(NoTargetsError):
        execute_parallel([], Command.from_args(["pull"]))
    with pytest.raises(ValueError):
        execute_parallel([repo, repo], Command.from_args(["pull"]))
    with pytest.raises(ValueError):
        execute_parallel([repo], Command.from_args(["pull"]), parallel_tasks=0)
    with pytest.raises(TypeError):
        execute_parallel([repo], "git pull")


def test_execute_parallel_unbounded_policy(monkeypatch, make_repo):
    monkeypatch.setattr(RUNNER, lambda cwd, command, scope, shell=False: _ok())
    targets = [make_repo(f"repo{i}") for i in range(12)]

    summary = execute_parallel(targets, Command.from_args(["fetch"]), parallel_tasks=None)

    assert summary.successful_count == 12
