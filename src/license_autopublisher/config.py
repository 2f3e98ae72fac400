"""Configuration for the license auto-publisher.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)

Every step timeout of the guided workflow lives here so tests (and operators) can
shrink or stretch them without touching the state machine.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True, slots=True)
class FlowTimeouts:
    """Per-step wait bounds (seconds) consumed by the workflow."""

    guidance: float = 180.0
    selection: float = 120.0
    publish_confirmation: float = 180.0
    first_time_publish: float = 120.0
    editor_idle: float = 600.0
    form: float = 300.0


class AutoPublishSettings(BaseSettings):
    """Settings for the auto-publish workflow.

    Environment variables:
    - LOG_LEVEL                                 (optional)
    - AUTOPUBLISH_STATE_PATH                    (optional)
    - AUTOPUBLISH_TEMPLATES_PATH                (optional)
    - AUTOPUBLISH_ALLOWED_FORUM_CHANNELS        (optional, JSON list of ids)
    - AUTOPUBLISH_BACKUP_NOTIFICATIONS_ENABLED  (optional)
    - AUTOPUBLISH_NOTIFICATION_ENDPOINT         (required when notifications are enabled)

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `AutoPublishSettings(_env_file=path_to_env)`.
    """

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )

    state_path: Path = Field(
        default=Path("license_state"),
        validation_alias="AUTOPUBLISH_STATE_PATH",
        description="Directory where preferences, licenses and announcements are persisted",
    )
    templates_path: Path = Field(
        default=Path("templates/licenses.json"),
        validation_alias="AUTOPUBLISH_TEMPLATES_PATH",
        description="JSON file holding the read-only template licenses",
    )

    allowed_forum_channels: list[int] = Field(
        default_factory=list,
        validation_alias="AUTOPUBLISH_ALLOWED_FORUM_CHANNELS",
        description="Forum channel ids the workflow runs in. Empty means every forum.",
    )

    backup_notifications_enabled: bool = Field(
        default=False,
        validation_alias="AUTOPUBLISH_BACKUP_NOTIFICATIONS_ENABLED",
        description="Send a webhook when a thread's backup permission changes",
    )
    notification_endpoint: str = Field(
        default="",
        validation_alias="AUTOPUBLISH_NOTIFICATION_ENDPOINT",
        description="Webhook URL receiving backup permission change events",
    )
    notification_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        validation_alias="AUTOPUBLISH_NOTIFICATION_TIMEOUT_SECONDS",
        description="HTTP timeout for a single webhook delivery",
    )
    thread_url_base: str = Field(
        default="https://discord.com/channels",
        validation_alias="AUTOPUBLISH_THREAD_URL_BASE",
        description="Base used to build thread/message links in notifications",
    )

    max_licenses_per_user: int = Field(
        default=5,
        gt=0,
        validation_alias="AUTOPUBLISH_MAX_LICENSES_PER_USER",
        description="Upper bound on licenses a single user may own",
    )
    dedup_window_seconds: float = Field(
        default=300.0,
        gt=0,
        validation_alias="AUTOPUBLISH_DEDUP_WINDOW_SECONDS",
        description="How long a thread id is remembered to suppress duplicate triggers",
    )
    max_trigger_age_seconds: float = Field(
        default=300.0,
        gt=0,
        validation_alias="AUTOPUBLISH_MAX_TRIGGER_AGE_SECONDS",
        description="Threads older than this are ignored (avoids replay after restart)",
    )

    guidance_timeout_seconds: float = Field(
        default=180.0, gt=0, validation_alias="AUTOPUBLISH_GUIDANCE_TIMEOUT_SECONDS"
    )
    selection_timeout_seconds: float = Field(
        default=120.0, gt=0, validation_alias="AUTOPUBLISH_SELECTION_TIMEOUT_SECONDS"
    )
    publish_confirmation_timeout_seconds: float = Field(
        default=180.0, gt=0, validation_alias="AUTOPUBLISH_PUBLISH_CONFIRMATION_TIMEOUT_SECONDS"
    )
    first_time_publish_timeout_seconds: float = Field(
        default=120.0, gt=0, validation_alias="AUTOPUBLISH_FIRST_TIME_PUBLISH_TIMEOUT_SECONDS"
    )
    editor_idle_timeout_seconds: float = Field(
        default=600.0, gt=0, validation_alias="AUTOPUBLISH_EDITOR_IDLE_TIMEOUT_SECONDS"
    )
    form_timeout_seconds: float = Field(
        default=300.0, gt=0, validation_alias="AUTOPUBLISH_FORM_TIMEOUT_SECONDS"
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    @model_validator(mode="after")
    def _require_endpoint_when_enabled(self) -> AutoPublishSettings:
        if self.backup_notifications_enabled and not self.notification_endpoint.strip():
            raise ValueError(
                "AUTOPUBLISH_NOTIFICATION_ENDPOINT is required when backup notifications are enabled"
            )
        return self

    @property
    def timeouts(self) -> FlowTimeouts:
        return FlowTimeouts(
            guidance=self.guidance_timeout_seconds,
            selection=self.selection_timeout_seconds,
            publish_confirmation=self.publish_confirmation_timeout_seconds,
            first_time_publish=self.first_time_publish_timeout_seconds,
            editor_idle=self.editor_idle_timeout_seconds,
            form=self.form_timeout_seconds,
        )

