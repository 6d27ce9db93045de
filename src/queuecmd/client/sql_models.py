"""SQLModel table for the bundled queue client."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, Index, Text
from sqlmodel import Field, SQLModel


class QueueMessageRow(SQLModel, table=True):
    __tablename__ = "queue_messages"  # type: ignore[bad-override]
    __table_args__ = (
        Index("ix_queue_messages_scope", "queue", "queue_type", "message_id"),
    )

    message_id: int | None = Field(default=None, primary_key=True)
    queue: str = Field(index=True)
    queue_type: str
    payload: str = Field(sa_column=Column(Text, nullable=False))
    activates_at: int | None = Field(default=None, index=True)
    locked_until: int | None = None
    attempts: int = 0
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
