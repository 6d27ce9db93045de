"""Bridge between task queue items and external commands."""

from __future__ import annotations

import logging
import os
import shlex
import signal
import subprocess
from typing import Any

from queuecmd.actions.models import ExecOutcome
from queuecmd.client.base import Message

logger = logging.getLogger(__name__)

DEFAULT_EXEC_TIMEOUT_SECONDS = 10
TIMEOUT_EXIT_CODE = 124
NOT_STARTED_EXIT_CODE = 127


class ExecBridge:
    """Runs ``<command> '<queue>:<payload>'`` through the shell.

    The command string is passed to the shell as given; callers that accept
    commands from untrusted input must sanitize them first. Only the
    ``queue:payload`` argument is quoted.
    """

    def __init__(self, *, timeout_seconds: int = DEFAULT_EXEC_TIMEOUT_SECONDS) -> None:
        self.timeout_seconds = timeout_seconds

    def run(
        self,
        command: str,
        queue_name: str,
        payload: str,
        timeout_seconds: int | None = None,
    ) -> ExecOutcome:
        """Run the command once and classify the result by exit status."""

        timeout = self.timeout_seconds if timeout_seconds is None else timeout_seconds
        shell_command = build_shell_command(command, queue_name, payload)
        logger.debug("Running %s", shell_command)
        try:
            process = subprocess.Popen(  # noqa: S602
                shell_command,
                shell=True,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                start_new_session=True,
            )
        except OSError as error:
            return ExecOutcome(
                succeeded=False,
                exit_code=NOT_STARTED_EXIT_CODE,
                merged_output=str(error),
            )

        try:
            output, _ = process.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            output = _terminate_process(process)
            return ExecOutcome(
                succeeded=False,
                exit_code=TIMEOUT_EXIT_CODE,
                merged_output=output,
                timed_out=True,
            )
        except BaseException:
            # Interrupted while waiting; the command runs in its own session.
            _terminate_process(process)
            raise

        return ExecOutcome(
            succeeded=process.returncode == 0,
            exit_code=process.returncode,
            merged_output=output or "",
        )

    def callback(self, message: Message, params: dict[str, Any]) -> bool:
        """Per-item ``process`` callback: run ``params['command']`` for one task."""

        queue_name = params["queue"]
        payload = str(message.data.get("task", ""))
        outcome = self.run(
            params["command"],
            queue_name,
            payload,
            timeout_seconds=params.get("timeout_seconds"),
        )
        if outcome.merged_output:
            logger.debug("Command output for task %s: %s", message.id, outcome.merged_output)
        if outcome.succeeded:
            logger.info("Task %s on %s succeeded", message.id, queue_name)
        elif outcome.timed_out:
            logger.warning("Task %s on %s timed out", message.id, queue_name)
        else:
            logger.warning(
                "Task %s on %s failed with exit code %d",
                message.id,
                queue_name,
                outcome.exit_code,
            )
        return outcome.succeeded


def build_shell_command(command: str, queue_name: str, payload: str) -> str:
    """Append the quoted ``queue:payload`` argument to ``command``."""

    return f"{command.strip()} {shlex.quote(f'{queue_name}:{payload}')}"


def _terminate_process(process: subprocess.Popen[str]) -> str:
    _signal_process_group(process, signal.SIGTERM)
    try:
        output, _ = process.communicate(timeout=2)
    except subprocess.TimeoutExpired:
        _signal_process_group(process, getattr(signal, "SIGKILL", signal.SIGTERM))
        output, _ = process.communicate()
    return output or ""


def _signal_process_group(process: subprocess.Popen[str], signum: int) -> None:
    try:
        if hasattr(os, "killpg"):
            os.killpg(process.pid, signum)
        else:
            process.terminate()
    except OSError:
        return
