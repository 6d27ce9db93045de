"""Queue client interface and the bundled SQL-backed client."""

from queuecmd.client.base import Message, ProcessCallback, QueueClient, SubscribeCallback

__all__ = ["Message", "ProcessCallback", "QueueClient", "SubscribeCallback"]
