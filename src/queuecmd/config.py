"""Runtime configuration for queue actions."""

from __future__ import annotations

import os
from dataclasses import dataclass
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DEFAULT_DSN = "sqlite:///.queuecmd.db"


@dataclass(slots=True)
class Settings:
    """Connection and loop settings, loaded from ``QUEUECMD_*`` variables."""

    dsn: str = DEFAULT_DSN
    exec_timeout_seconds: int = 10
    poll_interval_seconds: float = 10.0
    listen_delay_seconds: float = 1.0
    visibility_timeout_seconds: int = 300
    timezone: str | None = None

    @classmethod
    def from_env(cls, dsn: str | None = None) -> Settings:
        """Load settings from environment with defaults for local use."""

        return cls(
            dsn=dsn or os.getenv("QUEUECMD_DSN", DEFAULT_DSN),
            exec_timeout_seconds=_env_int("QUEUECMD_EXEC_TIMEOUT_SECONDS", 10),
            poll_interval_seconds=_env_float("QUEUECMD_POLL_INTERVAL_SECONDS", 10.0),
            listen_delay_seconds=_env_float("QUEUECMD_LISTEN_DELAY_SECONDS", 1.0),
            visibility_timeout_seconds=_env_int("QUEUECMD_VISIBILITY_TIMEOUT_SECONDS", 300),
            timezone=os.getenv("QUEUECMD_TIMEZONE", "").strip() or None,
        )

    def validate(self) -> None:
        """Raise configuration error for unusable values."""

        if not self.dsn.strip():
            raise ValueError("QUEUECMD_DSN must not be empty.")
        if self.exec_timeout_seconds <= 0:
            raise ValueError("QUEUECMD_EXEC_TIMEOUT_SECONDS must be > 0.")
        if self.poll_interval_seconds < 0:
            raise ValueError("QUEUECMD_POLL_INTERVAL_SECONDS must be >= 0.")
        if self.listen_delay_seconds < 0:
            raise ValueError("QUEUECMD_LISTEN_DELAY_SECONDS must be >= 0.")
        if self.visibility_timeout_seconds <= 0:
            raise ValueError("QUEUECMD_VISIBILITY_TIMEOUT_SECONDS must be > 0.")
        if self.timezone is not None:
            try:
                ZoneInfo(self.timezone)
            except (ZoneInfoNotFoundError, ValueError) as error:
                raise ValueError(f"Unknown QUEUECMD_TIMEZONE: {self.timezone!r}") from error


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as error:
        raise ValueError(f"Invalid integer value for {name}: {value!r}") from error


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError as error:
        raise ValueError(f"Invalid number for {name}: {value!r}") from error
