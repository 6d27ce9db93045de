"""Size, peek, consume and scheduled-add actions for task queues."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

import click

from queuecmd.actions.datetimes import DateTimeNormalizer
from queuecmd.actions.errors import PushError
from queuecmd.actions.exec_bridge import DEFAULT_EXEC_TIMEOUT_SECONDS, ExecBridge
from queuecmd.actions.models import ActionRequest, LoopState
from queuecmd.client.base import Message, QueueClient

logger = logging.getLogger(__name__)

DEFAULT_PEEK_COUNT = 10
DEFAULT_POLL_INTERVAL_SECONDS = 10.0
PEEK_DIVIDER = "-" * 40


@dataclass(frozen=True, slots=True)
class SizeAction:
    pass


@dataclass(frozen=True, slots=True)
class PeekAction:
    # Peeking always uses DEFAULT_PEEK_COUNT; the requested value is only logged.
    requested: int | None


@dataclass(frozen=True, slots=True)
class ExecAction:
    command: str
    count: int
    listen: bool


@dataclass(frozen=True, slots=True)
class AddAction:
    message: str
    activates: str | None


@dataclass(frozen=True, slots=True)
class NoAction:
    pass


TaskAction = SizeAction | PeekAction | ExecAction | AddAction | NoAction


def classify_task_request(request: ActionRequest) -> TaskAction:
    """Pick the single task action for a request: size > peek > exec > add > none."""

    if request.size:
        return SizeAction()
    if request.peek is not None:
        return PeekAction(requested=request.peek)
    if request.exec_command:
        return ExecAction(
            command=request.exec_command,
            count=request.count or 0,
            listen=request.listen,
        )
    if request.message is not None:
        return AddAction(message=request.message, activates=request.activates)
    return NoAction()


class TaskActionHandler:
    """Runs one task-queue action, including the long-running consume loop."""

    def __init__(  # noqa: PLR0913
        self,
        *,
        normalizer: DateTimeNormalizer,
        bridge: ExecBridge,
        emit: Callable[[str], None] = click.echo,
        sleep: Callable[[float], None] = time.sleep,
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
        exec_timeout_seconds: int = DEFAULT_EXEC_TIMEOUT_SECONDS,
    ) -> None:
        self.normalizer = normalizer
        self.bridge = bridge
        self.emit = emit
        self.sleep = sleep
        self.poll_interval_seconds = poll_interval_seconds
        self.exec_timeout_seconds = exec_timeout_seconds

    def handle(self, queue: QueueClient, request: ActionRequest) -> None:
        match classify_task_request(request):
            case SizeAction():
                self._size(queue, request)
            case PeekAction(requested=requested):
                self._peek(queue, request.queue_name, requested)
            case ExecAction(command=command, count=count, listen=listen):
                self.consume(queue, request.queue_name, command, count=count, listen=listen)
            case AddAction(message=message, activates=activates):
                self._add(queue, request.queue_name, message, activates)
            case NoAction():
                logger.info("Nothing to do for task queue %s", request.queue_name)

    def consume(
        self,
        queue: QueueClient,
        queue_name: str,
        command: str,
        *,
        count: int,
        listen: bool,
    ) -> LoopState:
        """Hand items to ``command`` one at a time until ``count`` items were handled.

        The first attempt always happens, so ``count=0`` without ``listen``
        still processes at most one item. With ``listen`` the loop only ends
        when the process is interrupted.
        """

        state = LoopState(remaining=count, listen=listen)
        params = {
            "command": command,
            "queue": queue_name,
            "timeout_seconds": self.exec_timeout_seconds,
        }
        while True:
            handled = queue.process(1, self.bridge.callback, params)
            state.record(handled)
            logger.info(
                "Processed %d item(s) from %s, remaining=%s",
                handled,
                queue_name,
                "listen" if state.listen else state.remaining,
            )
            if state.finished:
                return state
            self.sleep(self.poll_interval_seconds)

    def _size(self, queue: QueueClient, request: ActionRequest) -> None:
        size = queue.queue_size()
        self.emit(describe_size(request.queue_name, size))

    def _peek(self, queue: QueueClient, queue_name: str, requested: int | None) -> None:
        if requested is not None and requested != DEFAULT_PEEK_COUNT:
            logger.debug("Ignoring peek count %d, showing up to %d", requested, DEFAULT_PEEK_COUNT)
        peeked = queue.peek(DEFAULT_PEEK_COUNT)
        if not peeked:
            self.emit(f"Queue {queue_name} is empty.")
            return
        for index, message in enumerate(peeked, start=1):
            if index > 1:
                self.emit(PEEK_DIVIDER)
            self.emit(_render_peeked(index, message))

    def _add(
        self,
        queue: QueueClient,
        queue_name: str,
        message: str,
        activates: str | None,
    ) -> None:
        activation = self.normalizer.normalize(activates)
        task_id = queue.add({"task": message}, activation)
        if task_id is None:
            raise PushError(f"Could not add task to {queue_name}")
        logger.info(
            "Added task %s to %s, activates=%s",
            task_id,
            queue_name,
            activation.display if activation else "now",
        )


def describe_size(queue_name: str, size: int) -> str:
    """Render the task count with singular/plural agreement."""

    if size == 1:
        return f"There is 1 task in queue {queue_name}."
    return f"There are {size} tasks in queue {queue_name}."


def _render_peeked(index: int, message: Message) -> str:
    line = f"{index}. {message.data.get('task', '')}"
    if message.activates is not None:
        line += f" (activates {message.activates.display})"
    return line
