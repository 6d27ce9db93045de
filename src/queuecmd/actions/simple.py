"""Push/pop actions for simple FIFO queues."""

from __future__ import annotations

import logging
from collections.abc import Callable

import click

from queuecmd.actions.errors import NoMessageError, PushError
from queuecmd.actions.models import ActionRequest
from queuecmd.client.base import QueueClient

logger = logging.getLogger(__name__)


class SimpleActionHandler:
    """Runs ``--pop`` or pushes the request message."""

    def __init__(self, *, emit: Callable[[str], None] = click.echo) -> None:
        self.emit = emit

    def handle(self, queue: QueueClient, request: ActionRequest) -> None:
        if request.pop:
            message = queue.pop()
            if message is not None:
                self.emit(str(message.data.get("data", "")))
            return

        if request.message is not None:
            message_id = queue.push({"data": request.message})
            if message_id is None:
                raise PushError(f"Could not push message to {request.queue_name}")
            logger.info("Pushed message %s to %s", message_id, request.queue_name)
            return

        raise NoMessageError("No message given. Pass a message, '-' for stdin, or --pop.")
