"""Routing of action requests to the handler of the queue's paradigm."""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

import click

from queuecmd.actions.datetimes import DateTimeNormalizer
from queuecmd.actions.exec_bridge import ExecBridge
from queuecmd.actions.models import ActionRequest, QueueType
from queuecmd.actions.pubsub import PubsubActionHandler
from queuecmd.actions.simple import SimpleActionHandler
from queuecmd.actions.task import TaskActionHandler
from queuecmd.client.base import QueueClient
from queuecmd.config import Settings


class ActionHandler(Protocol):
    def handle(self, queue: QueueClient, request: ActionRequest) -> None: ...


class ActionDispatcher:
    """Selects the handler for ``request.queue_type`` and runs it.

    Queue types are validated by the CLI before a request gets here.
    """

    def __init__(self, handlers: dict[QueueType, ActionHandler]) -> None:
        self.handlers = handlers

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        emit: Callable[[str], None] = click.echo,
    ) -> ActionDispatcher:
        normalizer = DateTimeNormalizer(timezone=settings.timezone)
        bridge = ExecBridge(timeout_seconds=settings.exec_timeout_seconds)
        return cls(
            {
                QueueType.SIMPLE: SimpleActionHandler(emit=emit),
                QueueType.TASK: TaskActionHandler(
                    normalizer=normalizer,
                    bridge=bridge,
                    emit=emit,
                    poll_interval_seconds=settings.poll_interval_seconds,
                    exec_timeout_seconds=settings.exec_timeout_seconds,
                ),
                QueueType.PUBSUB: PubsubActionHandler(
                    normalizer=normalizer,
                    emit=emit,
                    listen_delay_seconds=settings.listen_delay_seconds,
                ),
            },
        )

    def dispatch(self, queue: QueueClient, request: ActionRequest) -> None:
        self.handlers[request.queue_type].handle(queue, request)
