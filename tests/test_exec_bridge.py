from __future__ import annotations

import os
import shlex
import subprocess
import sys
import time

import allure
import pytest

from queuecmd.actions.exec_bridge import (
    TIMEOUT_EXIT_CODE,
    ExecBridge,
    build_shell_command,
)
from queuecmd.client.base import Message

PYTHON = shlex.quote(sys.executable)

pytestmark = [
    allure.epic("Action Engine"),
    allure.feature("External Commands"),
]


def _python(code: str) -> str:
    return f"{PYTHON} -c {shlex.quote(code)}"


def test_build_shell_command_quotes_queue_and_payload() -> None:
    command = build_shell_command("./run-job.sh --fast ", "jobs", "it's done")

    assert command == "./run-job.sh --fast " + shlex.quote("jobs:it's done")
    assert shlex.split(command) == ["./run-job.sh", "--fast", "jobs:it's done"]


def test_zero_exit_code_succeeds() -> None:
    outcome = ExecBridge().run(_python("import sys; sys.exit(0)"), "jobs", "payload")

    assert outcome.succeeded is True
    assert outcome.exit_code == 0
    assert outcome.timed_out is False


def test_non_zero_exit_code_fails() -> None:
    outcome = ExecBridge().run(_python("import sys; sys.exit(1)"), "jobs", "payload")

    assert outcome.succeeded is False
    assert outcome.exit_code == 1


def test_command_receives_queue_payload_argument_and_merges_output() -> None:
    code = "import sys; print(sys.argv[1]); print('oops', file=sys.stderr)"

    outcome = ExecBridge().run(_python(code), "jobs", "hello world")

    assert outcome.succeeded is True
    assert "jobs:hello world" in outcome.merged_output
    assert "oops" in outcome.merged_output


def test_command_exceeding_timeout_is_terminated_and_fails() -> None:
    bridge = ExecBridge(timeout_seconds=1)

    outcome = bridge.run(_python("import time; time.sleep(30)"), "jobs", "slow")

    assert outcome.succeeded is False
    assert outcome.timed_out is True
    assert outcome.exit_code == TIMEOUT_EXIT_CODE


def test_missing_command_fails_through_shell() -> None:
    outcome = ExecBridge().run("queuecmd-no-such-command-xyz", "jobs", "payload")

    assert outcome.succeeded is False
    assert outcome.exit_code != 0


def test_callback_runs_command_for_task_payload() -> None:
    code = "import sys; sys.exit(0 if sys.argv[1] == 'jobs:resize 42' else 3)"
    message = Message(id=7, data={"task": "resize 42"})

    ok = ExecBridge().callback(
        message,
        {"command": _python(code), "queue": "jobs", "timeout_seconds": 5},
    )
    failed = ExecBridge().callback(
        Message(id=8, data={"task": "other"}),
        {"command": _python(code), "queue": "jobs", "timeout_seconds": 5},
    )

    assert ok is True
    assert failed is False


def _wait_for_pid_file(pid_file, timeout: float = 5.0) -> None:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if pid_file.exists() and pid_file.read_text().strip():
            return
        time.sleep(0.01)


def test_interrupted_wait_terminates_command(tmp_path, monkeypatch) -> None:
    pid_file = tmp_path / "pid"
    original_communicate = subprocess.Popen.communicate
    interrupted: list[int] = []

    def _interrupt_first_wait(process, *args, **kwargs):
        if not interrupted:
            interrupted.append(process.pid)
            _wait_for_pid_file(pid_file)
            raise KeyboardInterrupt
        return original_communicate(process, *args, **kwargs)

    monkeypatch.setattr(subprocess.Popen, "communicate", _interrupt_first_wait)
    command = f"echo $$ > {shlex.quote(str(pid_file))}; exec sleep 30; true"

    with pytest.raises(KeyboardInterrupt):
        ExecBridge(timeout_seconds=30).run(command, "jobs", "payload")

    pid = int(pid_file.read_text())
    assert pid == interrupted[0]
    with pytest.raises(ProcessLookupError):
        os.kill(pid, 0)
