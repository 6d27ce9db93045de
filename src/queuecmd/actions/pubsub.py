"""Publish and listen actions for pubsub queues."""

from __future__ import annotations

import logging
from collections.abc import Callable

import click

from queuecmd.actions.datetimes import DateTimeNormalizer
from queuecmd.actions.errors import MissingParametersError, PushError
from queuecmd.actions.models import ActionRequest
from queuecmd.client.base import Message, QueueClient

logger = logging.getLogger(__name__)

DEFAULT_LISTEN_DELAY_SECONDS = 1.0


class MessagePrinter:
    """Subscriber callback printing ``<queue>:<msg>`` for each delivery."""

    def __init__(self, queue_name: str, emit: Callable[[str], None]) -> None:
        self.queue_name = queue_name
        self.emit = emit

    def __call__(self, message: Message) -> None:
        self.emit(f"{self.queue_name}:{message.data.get('msg', '')}")


class PubsubActionHandler:
    """Listens for published messages or publishes the request message."""

    def __init__(
        self,
        *,
        normalizer: DateTimeNormalizer,
        emit: Callable[[str], None] = click.echo,
        listen_delay_seconds: float = DEFAULT_LISTEN_DELAY_SECONDS,
    ) -> None:
        self.normalizer = normalizer
        self.emit = emit
        self.listen_delay_seconds = listen_delay_seconds

    def handle(self, queue: QueueClient, request: ActionRequest) -> None:
        if request.listen:
            queue.subscribe(MessagePrinter(request.queue_name, self.emit), persist=False)
            delivered = queue.listen(self.listen_delay_seconds, events=request.count)
            logger.info("Stopped listening on %s after %d message(s)", request.queue_name, delivered)
            return

        if request.message is not None:
            activation = self.normalizer.normalize(request.activates)
            message_id = queue.publish({"msg": request.message}, activation)
            if message_id is None:
                raise PushError(f"Could not publish message to {request.queue_name}")
            logger.info(
                "Published message %s to %s, activates=%s",
                message_id,
                request.queue_name,
                activation.display if activation else "now",
            )
            return

        raise MissingParametersError("Pass a message to publish or --listen to subscribe.")
