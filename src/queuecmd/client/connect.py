"""DSN-based connection to the bundled queue client."""

from __future__ import annotations

import logging

from sqlalchemy import event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import ArgumentError, SQLAlchemyError
from sqlalchemy.pool import NullPool
from sqlmodel import create_engine

from queuecmd.actions.errors import QueueConnectionError
from queuecmd.actions.models import QueueType
from queuecmd.client.sql import DEFAULT_VISIBILITY_TIMEOUT_SECONDS, SqlQueue
from queuecmd.client.sql_models import QueueMessageRow

logger = logging.getLogger(__name__)

SQLITE_BUSY_TIMEOUT_MS = 5000


def connect(
    dsn: str,
    queue_name: str,
    queue_type: QueueType,
    *,
    visibility_timeout_seconds: int = DEFAULT_VISIBILITY_TIMEOUT_SECONDS,
) -> SqlQueue:
    """Open ``queue_name`` in the database at ``dsn`` and ensure its table exists.

    Raises:
        QueueConnectionError: The DSN is malformed, its driver is missing, or
            the database cannot be reached.
    """

    try:
        engine = build_engine(dsn)
        QueueMessageRow.metadata.create_all(engine, tables=[QueueMessageRow.__table__])
    except (ArgumentError, SQLAlchemyError, ImportError) as error:
        raise QueueConnectionError(f"Cannot connect to {_redacted(dsn)}: {error}") from error

    logger.debug("Connected to %s, queue=%s type=%s", _redacted(dsn), queue_name, queue_type.value)
    return SqlQueue(
        engine,
        queue_name,
        queue_type,
        visibility_timeout_seconds=visibility_timeout_seconds,
    )


def build_engine(dsn: str) -> Engine:
    """Build SQLAlchemy engine; SQLite gets WAL and a busy timeout."""

    url = make_url(dsn)
    if url.get_backend_name() != "sqlite":
        return create_engine(url, pool_pre_ping=True)

    engine = create_engine(
        url,
        connect_args={
            "check_same_thread": False,
            "timeout": SQLITE_BUSY_TIMEOUT_MS / 1000.0,
        },
        poolclass=NullPool,
    )
    event.listen(engine, "connect", _apply_sqlite_pragmas)
    return engine


def _apply_sqlite_pragmas(dbapi_connection, _) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode = WAL")
    cursor.execute(f"PRAGMA busy_timeout = {SQLITE_BUSY_TIMEOUT_MS}")
    cursor.close()


def _redacted(dsn: str) -> str:
    try:
        return make_url(dsn).render_as_string(hide_password=True)
    except ArgumentError:
        return "<invalid dsn>"
