"""Outbound webhook announcing backup-permission changes."""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime
from typing import Protocol

import requests
from pydantic import BaseModel, Field

from license_autopublisher.errors import NotificationError

logger = logging.getLogger(__name__)

BACKUP_PERMISSION_EVENT = "backup_permission_update"
CONTENT_PREVIEW_LIMIT = 100


class NotificationAuthor(BaseModel):
    discord_user_id: str
    username: str
    display_name: str


class WorkInfo(BaseModel):
    title: str
    content_preview: str
    license_type: str
    backup_allowed: bool


class NotificationUrls(BaseModel):
    discord_thread: str
    direct_message: str


class BackupNotification(BaseModel):
    event_type: str = BACKUP_PERMISSION_EVENT
    timestamp: datetime = Field(default_factory=lambda: datetime.now(tz=UTC))
    guild_id: str
    channel_id: str
    thread_id: str
    message_id: str
    author: NotificationAuthor
    work_info: WorkInfo
    urls: NotificationUrls


def content_preview(text: str, limit: int = CONTENT_PREVIEW_LIMIT) -> str:
    text = text.strip()
    if len(text) <= limit:
        return text
    return text[: limit - 3].rstrip() + "..."


class Notifier(Protocol):
    async def send_backup_notification(self, notification: BackupNotification) -> None: ...


class WebhookNotifier:
    """POSTs notifications as JSON. Delivery is attempted once, never retried."""

    def __init__(
        self,
        *,
        endpoint: str,
        enabled: bool = True,
        timeout_seconds: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        self._endpoint = endpoint
        self._enabled = enabled and bool(endpoint.strip())
        self._timeout = timeout_seconds
        self._session = session or requests.Session()
        self._session.headers.update(
            {"Content-Type": "application/json", "User-Agent": "forum-license-autopublisher"}
        )

    @property
    def enabled(self) -> bool:
        return self._enabled

    def _post(self, payload: dict[str, object]) -> None:
        try:
            resp = self._session.post(self._endpoint, json=payload, timeout=self._timeout)
        except requests.RequestException as exc:
            raise NotificationError(f"Notification request failed: {exc}") from exc
        if not 200 <= resp.status_code < 300:
            raise NotificationError(
                f"Notification endpoint returned {resp.status_code}: {resp.text[:200]}"
            )

    async def send_backup_notification(self, notification: BackupNotification) -> None:
        if not self._enabled:
            logger.debug(
                "Backup notifications disabled; skipping",
                extra={"thread_id": notification.thread_id},
            )
            return
        await asyncio.to_thread(self._post, notification.model_dump(mode="json"))
        logger.info(
            "Backup notification delivered",
            extra={
                "thread_id": notification.thread_id,
                "backup_allowed": notification.work_info.backup_allowed,
            },
        )
