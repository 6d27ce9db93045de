"""Shared test fixtures."""

from __future__ import annotations

from typing import Any

import pytest

from queuecmd.actions.datetimes import DateTimeNormalizer
from queuecmd.actions.models import NormalizedTime
from queuecmd.client.base import Message, ProcessCallback, SubscribeCallback

FIXED_NOW = 1_767_225_600  # 2026-01-01 00:00:00 UTC


class FakeQueue:
    """In-memory queue client recording the calls made by handlers."""

    def __init__(self, name: str = "jobs", *, fail_writes: bool = False) -> None:
        self.name = name
        self.fail_writes = fail_writes
        self.items: list[Message] = []
        self.process_calls: list[tuple[int, dict[str, Any]]] = []
        self.subscriptions: list[tuple[SubscribeCallback, bool]] = []
        self.listen_calls: list[tuple[float, int | None]] = []
        self._next_id = 1

    def _store(self, data: dict[str, Any], activates: NormalizedTime | None) -> int | None:
        if self.fail_writes:
            return None
        message = Message(id=self._next_id, data=data, activates=activates)
        self._next_id += 1
        self.items.append(message)
        return message.id

    def push(self, data: dict[str, Any]) -> int | None:
        return self._store(data, None)

    def pop(self) -> Message | None:
        return self.items.pop(0) if self.items else None

    def queue_size(self) -> int:
        return len(self.items)

    def peek(self, count: int) -> list[Message]:
        return list(self.items[:count])

    def add(self, data: dict[str, Any], activates: NormalizedTime | None) -> int | None:
        return self._store(data, activates)

    def process(
        self,
        count: int,
        callback: ProcessCallback,
        callback_params: dict[str, Any],
    ) -> int:
        self.process_calls.append((count, callback_params))
        handled = 0
        for message in list(self.items[:count]):
            handled += 1
            if callback(message, callback_params):
                self.items.remove(message)
        return handled

    def publish(self, data: dict[str, Any], activates: NormalizedTime | None) -> int | None:
        return self._store(data, activates)

    def subscribe(self, callback: SubscribeCallback, persist: bool = False) -> None:
        self.subscriptions.append((callback, persist))

    def listen(self, listen_delay: float, events: int | None = None) -> int:
        self.listen_calls.append((listen_delay, events))
        delivered = 0
        for message in list(self.items):
            if events is not None and delivered >= events:
                break
            for callback, _ in self.subscriptions:
                callback(message)
            delivered += 1
        return delivered


class StubBridge:
    """Exec bridge replacement answering every callback with ``result``."""

    def __init__(self, result: bool = True) -> None:
        self.result = result
        self.calls: list[tuple[Message, dict[str, Any]]] = []

    def callback(self, message: Message, params: dict[str, Any]) -> bool:
        self.calls.append((message, params))
        return self.result


@pytest.fixture()
def fake_queue() -> FakeQueue:
    return FakeQueue()


@pytest.fixture()
def emitted() -> list[str]:
    return []


@pytest.fixture()
def normalizer() -> DateTimeNormalizer:
    return DateTimeNormalizer(timezone="UTC", clock=lambda: FIXED_NOW)
