"""Request and result models for queue actions."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

DISPLAY_FORMAT = "%Y-%m-%d %H:%M:%S UTC"


class QueueType(str, Enum):
    """Messaging paradigm of a queue."""

    SIMPLE = "simple"
    TASK = "task"
    PUBSUB = "pubsub"


@dataclass(slots=True)
class ActionRequest:
    """Normalized CLI input for one queue action.

    Only the fields meaningful to ``queue_type`` are read by its handler.
    """

    queue_name: str
    queue_type: QueueType
    message: str | None = None
    pop: bool = False
    peek: int | None = None
    size: bool = False
    exec_command: str | None = None
    count: int | None = None
    listen: bool = False
    activates: str | None = None


@dataclass(frozen=True, slots=True)
class NormalizedTime:
    """Activation time as epoch seconds with a canonical UTC rendering."""

    epoch: int

    @property
    def display(self) -> str:
        return datetime.fromtimestamp(self.epoch, tz=UTC).strftime(DISPLAY_FORMAT)

    def __str__(self) -> str:
        return self.display


@dataclass(slots=True)
class ExecOutcome:
    """Result of one external command invocation."""

    succeeded: bool
    exit_code: int
    merged_output: str
    timed_out: bool = False


@dataclass(slots=True)
class LoopState:
    """Counters of the task consume loop."""

    remaining: int
    listen: bool

    def record(self, handled: int) -> None:
        if handled and not self.listen:
            self.remaining -= handled

    @property
    def finished(self) -> bool:
        return not self.listen and self.remaining <= 0
