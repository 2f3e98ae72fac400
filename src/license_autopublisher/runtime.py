"""Wiring: build every collaborator of the workflow from settings.

A platform adapter provides the `MessagingSurface` (typically backed by an
`InteractionCollector`) and forwards "thread created" events to
`AutoPublisher.on_thread_created`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime

import requests

from license_autopublisher.config import AutoPublishSettings
from license_autopublisher.licenses.store import LicenseDataStore
from license_autopublisher.licenses.templates import TemplateCatalog
from license_autopublisher.logging import configure_logging
from license_autopublisher.messaging.surface import MessagingSurface, Thread
from license_autopublisher.publishing.notifier import WebhookNotifier
from license_autopublisher.publishing.publisher import PublishCoordinator
from license_autopublisher.workflow.dedup import TriggerDeduplicator
from license_autopublisher.workflow.state_machine import Done, FlowDependencies
from license_autopublisher.workflow.trigger import handle_thread_created

logger = logging.getLogger(__name__)


@dataclass
class AutoPublisher:
    deps: FlowDependencies
    dedup: TriggerDeduplicator
    allowed_forum_channels: frozenset[int] = field(default_factory=frozenset)

    async def on_thread_created(self, thread: Thread) -> Done | None:
        return await handle_thread_created(
            thread, self.deps, self.dedup, allowed_forum_channels=self.allowed_forum_channels
        )

    def reload_templates(self) -> None:
        self.deps.catalog.reload()


def build_auto_publisher(
    settings: AutoPublishSettings,
    surface: MessagingSurface,
    *,
    http_session: requests.Session | None = None,
    started_at: datetime | None = None,
) -> AutoPublisher:
    configure_logging(settings.log_level)
    store = LicenseDataStore.open(
        settings.state_path, max_licenses_per_user=settings.max_licenses_per_user
    )
    catalog = TemplateCatalog(settings.templates_path)
    notifier = WebhookNotifier(
        endpoint=settings.notification_endpoint,
        enabled=settings.backup_notifications_enabled,
        timeout_seconds=settings.notification_timeout_seconds,
        session=http_session,
    )
    publisher = PublishCoordinator(
        store=store,
        surface=surface,
        notifier=notifier,
        thread_url_base=settings.thread_url_base,
    )
    deps = FlowDependencies(
        store=store,
        catalog=catalog,
        surface=surface,
        publisher=publisher,
        timeouts=settings.timeouts,
        max_trigger_age_seconds=settings.max_trigger_age_seconds,
        started_at=started_at or datetime.now(tz=UTC),
    )
    logger.info(
        "Auto-publisher ready",
        extra={
            "state_path": str(settings.state_path),
            "templates": len(catalog.get_all()),
            "notifications": notifier.enabled,
            "log_level": settings.log_level,
            "allowed_forum_channels": len(settings.allowed_forum_channels),
        },
    )
    return AutoPublisher(
        deps=deps,
        dedup=TriggerDeduplicator(settings.dedup_window_seconds),
        allowed_forum_channels=frozenset(settings.allowed_forum_channels),
    )
