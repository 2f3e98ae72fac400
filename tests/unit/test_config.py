"""Unit tests for settings loading."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from license_autopublisher.config import AutoPublishSettings, FlowTimeouts

_ENV_VARS = (
    "LOG_LEVEL",
    "AUTOPUBLISH_STATE_PATH",
    "AUTOPUBLISH_ALLOWED_FORUM_CHANNELS",
    "AUTOPUBLISH_BACKUP_NOTIFICATIONS_ENABLED",
    "AUTOPUBLISH_NOTIFICATION_ENDPOINT",
    "AUTOPUBLISH_MAX_LICENSES_PER_USER",
    "AUTOPUBLISH_GUIDANCE_TIMEOUT_SECONDS",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults_match_product_timeouts() -> None:
    settings = AutoPublishSettings(_env_file=None)

    assert settings.log_level == "INFO"
    assert settings.state_path == Path("license_state")
    assert settings.allowed_forum_channels == []
    assert settings.backup_notifications_enabled is False
    assert settings.max_licenses_per_user == 5
    assert settings.dedup_window_seconds == 300
    assert settings.timeouts == FlowTimeouts()
    assert settings.timeouts.guidance == 180
    assert settings.timeouts.editor_idle == 600


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AUTOPUBLISH_ALLOWED_FORUM_CHANNELS", "[10, 11]")
    monkeypatch.setenv("AUTOPUBLISH_MAX_LICENSES_PER_USER", "3")
    monkeypatch.setenv("AUTOPUBLISH_GUIDANCE_TIMEOUT_SECONDS", "30")

    settings = AutoPublishSettings(_env_file=None)

    assert settings.allowed_forum_channels == [10, 11]
    assert settings.max_licenses_per_user == 3
    assert settings.timeouts.guidance == 30
    assert settings.timeouts.selection == 120


def test_settings_loads_from_dotenv(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    (tmp_path / ".env").write_text(
        "\n".join(["LOG_LEVEL=DEBUG", "AUTOPUBLISH_STATE_PATH=/var/lib/licenses", ""]),
        encoding="utf-8",
    )

    settings = AutoPublishSettings()

    assert settings.log_level == "DEBUG"
    assert settings.state_path == Path("/var/lib/licenses")


def test_notifications_require_an_endpoint(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AUTOPUBLISH_BACKUP_NOTIFICATIONS_ENABLED", "true")

    with pytest.raises(ValidationError, match="AUTOPUBLISH_NOTIFICATION_ENDPOINT"):
        AutoPublishSettings(_env_file=None)

    monkeypatch.setenv("AUTOPUBLISH_NOTIFICATION_ENDPOINT", "https://hooks.example.test/backup")
    settings = AutoPublishSettings(_env_file=None)
    assert settings.notification_endpoint == "https://hooks.example.test/backup"
