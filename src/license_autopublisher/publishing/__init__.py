from license_autopublisher.publishing.notifier import (
    BackupNotification,
    Notifier,
    WebhookNotifier,
)
from license_autopublisher.publishing.publisher import PublishCoordinator

__all__ = ["BackupNotification", "Notifier", "PublishCoordinator", "WebhookNotifier"]
