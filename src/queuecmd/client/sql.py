"""Queue client backed by SQLModel + any SQLAlchemy database."""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import delete as sa_delete
from sqlalchemy import func, or_
from sqlalchemy import update as sa_update
from sqlalchemy.engine import Engine
from sqlmodel import Session, col, select

from queuecmd.actions.models import NormalizedTime, QueueType
from queuecmd.client.base import Message, ProcessCallback, SubscribeCallback
from queuecmd.client.sql_models import QueueMessageRow

logger = logging.getLogger(__name__)

DEFAULT_VISIBILITY_TIMEOUT_SECONDS = 300


class SqlQueue:
    """One named queue of one paradigm stored in the ``queue_messages`` table.

    Task items are claimed with a visibility lock before being handed to a
    ``process`` callback, so concurrent consumers never see the same item
    at once. A failed callback releases the lock and the item is retried by
    a later ``process`` call. Pubsub messages are retained and each
    ``SqlQueue`` instance tracks which ones it already delivered.
    """

    def __init__(  # noqa: PLR0913
        self,
        engine: Engine,
        name: str,
        queue_type: QueueType,
        *,
        visibility_timeout_seconds: int = DEFAULT_VISIBILITY_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.engine = engine
        self.name = name
        self.queue_type = queue_type
        self.visibility_timeout_seconds = visibility_timeout_seconds
        self.clock = clock
        self.sleep = sleep
        self._subscribers: list[SubscribeCallback] = []
        self._deliver_after: int | None = None
        self._delivered: set[int] = set()

    def close(self) -> None:
        """Release database connections."""

        self.engine.dispose()

    # simple

    def push(self, data: dict[str, Any]) -> int | None:
        return self._insert(data, activates=None)

    def pop(self) -> Message | None:
        while True:
            with Session(self.engine) as session:
                candidate = session.exec(
                    self._scope_query().order_by(col(QueueMessageRow.message_id).asc()).limit(1),
                ).one_or_none()
                if candidate is None:
                    return None
                message = _to_message(candidate)

                result = session.exec(
                    sa_delete(QueueMessageRow).where(
                        col(QueueMessageRow.message_id) == candidate.message_id,
                    ),
                )
                if result.rowcount != 1:
                    # Another consumer popped it first.
                    session.rollback()
                    continue
                session.commit()
                return message

    # task

    def queue_size(self) -> int:
        with Session(self.engine) as session:
            return session.exec(
                select(func.count())
                .select_from(QueueMessageRow)
                .where(
                    QueueMessageRow.queue == self.name,
                    QueueMessageRow.queue_type == self.queue_type.value,
                ),
            ).one()

    def peek(self, count: int) -> list[Message]:
        with Session(self.engine) as session:
            rows = session.exec(
                self._scope_query()
                .order_by(
                    func.coalesce(QueueMessageRow.activates_at, 0).asc(),
                    col(QueueMessageRow.message_id).asc(),
                )
                .limit(max(0, count)),
            ).all()
        return [_to_message(row) for row in rows]

    def add(self, data: dict[str, Any], activates: NormalizedTime | None) -> int | None:
        return self._insert(data, activates=activates)

    def process(
        self,
        count: int,
        callback: ProcessCallback,
        callback_params: dict[str, Any],
    ) -> int:
        handled = 0
        for _ in range(max(0, count)):
            message = self._claim_next()
            if message is None:
                break
            handled += 1
            try:
                succeeded = bool(callback(message, callback_params))
            except BaseException:
                self._release(message.id)
                raise
            if succeeded:
                self._remove(message.id)
            else:
                self._release(message.id)
        return handled

    # pubsub

    def publish(self, data: dict[str, Any], activates: NormalizedTime | None) -> int | None:
        return self._insert(data, activates=activates)

    def subscribe(self, callback: SubscribeCallback, persist: bool = False) -> None:
        if not self._subscribers:
            self._deliver_after = None if persist else self._last_message_id()
        self._subscribers.append(callback)

    def listen(self, listen_delay: float, events: int | None = None) -> int:
        delivered = 0
        while events is None or delivered < events:
            due, horizon = self._poll()
            for message in due:
                if events is not None and delivered >= events:
                    break
                for callback in self._subscribers:
                    callback(message)
                self._delivered.add(message.id)
                delivered += 1
            self._advance_watermark(due, horizon)
            if events is not None and delivered >= events:
                return delivered
            self.sleep(listen_delay)
        return delivered

    # internals

    def _now(self) -> int:
        return int(self.clock())

    def _scope_query(self):
        return select(QueueMessageRow).where(
            QueueMessageRow.queue == self.name,
            QueueMessageRow.queue_type == self.queue_type.value,
        )

    def _insert(self, data: dict[str, Any], *, activates: NormalizedTime | None) -> int | None:
        with Session(self.engine) as session:
            row = QueueMessageRow(
                queue=self.name,
                queue_type=self.queue_type.value,
                payload=json.dumps(data, ensure_ascii=False),
                activates_at=activates.epoch if activates is not None else None,
                created_at=datetime.now(tz=UTC),
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            logger.debug("Stored message %s in %s", row.message_id, self.name)
            return row.message_id

    def _claim_next(self) -> Message | None:
        while True:
            now = self._now()
            with Session(self.engine) as session:
                candidate = session.exec(
                    self._scope_query()
                    .where(
                        or_(
                            col(QueueMessageRow.activates_at).is_(None),
                            col(QueueMessageRow.activates_at) <= now,
                        ),
                        _unlocked(now),
                    )
                    .order_by(
                        func.coalesce(QueueMessageRow.activates_at, 0).asc(),
                        col(QueueMessageRow.message_id).asc(),
                    )
                    .limit(1),
                ).one_or_none()
                if candidate is None:
                    return None
                message = _to_message(candidate)

                result = session.exec(
                    sa_update(QueueMessageRow)
                    .where(col(QueueMessageRow.message_id) == candidate.message_id, _unlocked(now))
                    .values(locked_until=now + self.visibility_timeout_seconds),
                )
                if result.rowcount != 1:
                    session.rollback()
                    continue
                session.commit()
                return message

    def _release(self, message_id: int) -> None:
        with Session(self.engine) as session:
            session.exec(
                sa_update(QueueMessageRow)
                .where(col(QueueMessageRow.message_id) == message_id)
                .values(locked_until=None, attempts=QueueMessageRow.attempts + 1),
            )
            session.commit()

    def _remove(self, message_id: int) -> None:
        with Session(self.engine) as session:
            session.exec(
                sa_delete(QueueMessageRow).where(col(QueueMessageRow.message_id) == message_id),
            )
            session.commit()

    def _last_message_id(self) -> int:
        with Session(self.engine) as session:
            last = session.exec(
                select(func.max(QueueMessageRow.message_id)).where(
                    QueueMessageRow.queue == self.name,
                    QueueMessageRow.queue_type == self.queue_type.value,
                ),
            ).one()
        return last or 0

    def _poll(self) -> tuple[list[Message], int | None]:
        """Return due messages not yet delivered and the highest id safe to skip.

        Rows past the watermark that are still waiting for activation cap the
        horizon, so they are picked up by a later poll.
        """

        now = self._now()
        query = self._scope_query()
        if self._deliver_after is not None:
            query = query.where(col(QueueMessageRow.message_id) > self._deliver_after)
        with Session(self.engine) as session:
            rows = session.exec(query.order_by(col(QueueMessageRow.message_id).asc())).all()
        if not rows:
            return [], None

        due: list[Message] = []
        horizon = rows[-1].message_id or 0
        for row in rows:
            if row.activates_at is not None and row.activates_at > now:
                horizon = min(horizon, (row.message_id or 0) - 1)
            elif row.message_id not in self._delivered:
                due.append(_to_message(row))
        return due, horizon

    def _advance_watermark(self, due: list[Message], horizon: int | None) -> None:
        if horizon is None:
            return
        for message in due:
            if message.id > horizon:
                break
            if message.id not in self._delivered:
                horizon = message.id - 1
                break
        if self._deliver_after is None or horizon > self._deliver_after:
            self._deliver_after = horizon
        # Only ids delivered ahead of a still-scheduled message need tracking.
        self._delivered = {
            message_id for message_id in self._delivered if message_id > self._deliver_after
        }


def _unlocked(now: int):
    return or_(
        col(QueueMessageRow.locked_until).is_(None),
        col(QueueMessageRow.locked_until) <= now,
    )


def _to_message(row: QueueMessageRow) -> Message:
    return Message(
        id=row.message_id or 0,
        data=json.loads(row.payload),
        activates=NormalizedTime(epoch=row.activates_at) if row.activates_at is not None else None,
        attempts=row.attempts,
    )
