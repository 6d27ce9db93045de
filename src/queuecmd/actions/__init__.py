"""Queue action engine: handlers for simple, task and pubsub queues."""

from queuecmd.actions.datetimes import DateTimeNormalizer
from queuecmd.actions.dispatcher import ActionDispatcher
from queuecmd.actions.errors import (
    InvalidDateError,
    MissingParametersError,
    NoMessageError,
    PushError,
    QueueActionError,
    QueueConnectionError,
)
from queuecmd.actions.exec_bridge import ExecBridge
from queuecmd.actions.models import ActionRequest, ExecOutcome, LoopState, NormalizedTime, QueueType

__all__ = [
    "ActionDispatcher",
    "ActionRequest",
    "DateTimeNormalizer",
    "ExecBridge",
    "ExecOutcome",
    "InvalidDateError",
    "LoopState",
    "MissingParametersError",
    "NoMessageError",
    "NormalizedTime",
    "PushError",
    "QueueActionError",
    "QueueConnectionError",
    "QueueType",
]
