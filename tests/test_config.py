from __future__ import annotations

import allure
import pytest

from queuecmd.config import DEFAULT_DSN, Settings

pytestmark = [
    allure.epic("Queue CLI"),
    allure.feature("Configuration"),
]


def test_from_env_uses_defaults(monkeypatch) -> None:
    for name in (
        "QUEUECMD_DSN",
        "QUEUECMD_EXEC_TIMEOUT_SECONDS",
        "QUEUECMD_POLL_INTERVAL_SECONDS",
        "QUEUECMD_LISTEN_DELAY_SECONDS",
        "QUEUECMD_VISIBILITY_TIMEOUT_SECONDS",
        "QUEUECMD_TIMEZONE",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = Settings.from_env()

    assert settings == Settings()
    assert settings.dsn == DEFAULT_DSN
    assert settings.exec_timeout_seconds == 10
    assert settings.poll_interval_seconds == 10.0
    assert settings.listen_delay_seconds == 1.0
    assert settings.timezone is None


def test_from_env_reads_overrides(monkeypatch) -> None:
    monkeypatch.setenv("QUEUECMD_DSN", "sqlite:///env.db")
    monkeypatch.setenv("QUEUECMD_EXEC_TIMEOUT_SECONDS", "30")
    monkeypatch.setenv("QUEUECMD_POLL_INTERVAL_SECONDS", "0.5")
    monkeypatch.setenv("QUEUECMD_TIMEZONE", "Europe/Paris")

    settings = Settings.from_env()

    assert settings.dsn == "sqlite:///env.db"
    assert settings.exec_timeout_seconds == 30
    assert settings.poll_interval_seconds == 0.5
    assert settings.timezone == "Europe/Paris"


def test_explicit_dsn_wins_over_environment(monkeypatch) -> None:
    monkeypatch.setenv("QUEUECMD_DSN", "sqlite:///env.db")

    assert Settings.from_env(dsn="sqlite:///cli.db").dsn == "sqlite:///cli.db"


def test_from_env_rejects_non_numeric_values(monkeypatch) -> None:
    monkeypatch.setenv("QUEUECMD_EXEC_TIMEOUT_SECONDS", "soon")

    with pytest.raises(ValueError, match="QUEUECMD_EXEC_TIMEOUT_SECONDS"):
        Settings.from_env()


@pytest.mark.parametrize(
    ("settings", "match"),
    [
        (Settings(exec_timeout_seconds=0), "EXEC_TIMEOUT"),
        (Settings(poll_interval_seconds=-1), "POLL_INTERVAL"),
        (Settings(listen_delay_seconds=-0.5), "LISTEN_DELAY"),
        (Settings(visibility_timeout_seconds=0), "VISIBILITY_TIMEOUT"),
        (Settings(dsn=" "), "QUEUECMD_DSN"),
        (Settings(timezone="Mars/Olympus_Mons"), "QUEUECMD_TIMEZONE"),
    ],
)
def test_validate_rejects_unusable_values(settings: Settings, match: str) -> None:
    with pytest.raises(ValueError, match=match):
        settings.validate()


def test_validate_accepts_defaults() -> None:
    Settings().validate()
