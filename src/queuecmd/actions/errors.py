"""Errors raised by the queue action engine."""

from __future__ import annotations


class QueueActionError(RuntimeError):
    """Base error carrying the process exit code for the CLI."""

    exit_code = 1


class QueueConnectionError(QueueActionError):
    """Queue backend could not be reached or prepared."""

    exit_code = 2


class InvalidDateError(QueueActionError):
    """Activation time expression could not be resolved to a calendar day."""

    def __init__(self, value: str) -> None:
        super().__init__(f"Invalid date/time expression: {value!r}")
        self.value = value


class PushError(QueueActionError):
    """Queue client did not return an identifier for a written message."""


class NoMessageError(QueueActionError):
    """Neither --pop nor a message was given for a simple queue."""


class MissingParametersError(QueueActionError):
    """Neither --listen nor a message was given for a pubsub queue."""
