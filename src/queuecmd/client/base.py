"""Queue client interface consumed by the action handlers."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from queuecmd.actions.models import NormalizedTime


@dataclass(slots=True)
class Message:
    """One stored queue item."""

    id: int
    data: dict[str, Any] = field(default_factory=dict)
    activates: NormalizedTime | None = None
    attempts: int = 0


ProcessCallback = Callable[[Message, dict[str, Any]], bool]
"""Per-item callback for ``process``; True removes the item."""

SubscribeCallback = Callable[[Message], None]


class QueueClient(Protocol):
    """Operations of a connected queue handle."""

    name: str

    def push(self, data: dict[str, Any]) -> int | None:
        """Append ``data`` to a simple queue and return its id."""

    def pop(self) -> Message | None:
        """Remove and return the oldest simple-queue item without blocking."""

    def queue_size(self) -> int:
        """Count unprocessed task items."""

    def peek(self, count: int) -> list[Message]:
        """Return up to ``count`` upcoming task items without claiming them."""

    def add(self, data: dict[str, Any], activates: NormalizedTime | None) -> int | None:
        """Store a task item that becomes visible at ``activates``."""

    def process(
        self,
        count: int,
        callback: ProcessCallback,
        callback_params: dict[str, Any],
    ) -> int:
        """Claim up to ``count`` visible items and pass each one to ``callback``.

        Items are removed only when the callback returns True. Returns the
        number of items handed to the callback.
        """

    def publish(self, data: dict[str, Any], activates: NormalizedTime | None) -> int | None:
        """Publish ``data`` to subscribers from ``activates`` on."""

    def subscribe(self, callback: SubscribeCallback, persist: bool = False) -> None:
        """Register a callback for messages delivered by ``listen``."""

    def listen(self, listen_delay: float, events: int | None = None) -> int:
        """Deliver published messages to subscribers until ``events`` were delivered."""
