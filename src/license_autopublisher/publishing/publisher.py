"""Publishing a license announcement into a thread.

Superseding the old announcement and sending the new one are two separate calls;
a failure between them can leave a superseded announcement with no replacement.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from license_autopublisher.licenses.models import LicenseRecord, LicenseTerms
from license_autopublisher.licenses.store import LicenseDataStore
from license_autopublisher.messaging import views
from license_autopublisher.messaging.surface import Actor, MessageRef, MessagingSurface, Thread

from .notifier import (
    BackupNotification,
    NotificationAuthor,
    NotificationUrls,
    Notifier,
    WorkInfo,
    content_preview,
)

logger = logging.getLogger(__name__)

MISSING_CONTENT_PREVIEW = "(the thread's first message could not be read)"


class PublishCoordinator:
    def __init__(
        self,
        *,
        store: LicenseDataStore,
        surface: MessagingSurface,
        notifier: Notifier,
        thread_url_base: str = "https://discord.com/channels",
    ) -> None:
        self._store = store
        self._surface = surface
        self._notifier = notifier
        self._url_base = thread_url_base.rstrip("/")

    async def publish(
        self, thread: Thread, license: LicenseTerms, backup_allowed: bool, author: Actor
    ) -> MessageRef:
        """Publish `license` into `thread` and return the new announcement."""

        await self._supersede_previous(thread)

        message = await self._surface.send_message(
            thread.id, views.announcement(license, backup_allowed, author.display_name)
        )
        try:
            await self._surface.set_pinned(message, True)
        except Exception:
            logger.warning(
                "Could not pin announcement",
                extra={"thread_id": thread.id, "message_id": message.message_id},
                exc_info=True,
            )

        announcements = self._store.announcements
        changed = announcements.backup_changed(thread.id, backup_allowed)
        announcements.upsert(
            thread_id=thread.id,
            message_id=message.message_id,
            author_id=author.user_id,
            backup_allowed=backup_allowed,
        )
        logger.info(
            "License announcement published",
            extra={
                "thread_id": thread.id,
                "message_id": message.message_id,
                "license": license.name,
                "backup_allowed": backup_allowed,
                "backup_changed": changed,
            },
        )

        if changed:
            await self._notify(thread, message, license, backup_allowed, author)

        if isinstance(license, LicenseRecord):
            self._store.licenses.increment_usage(license.id, license.owner_id)

        return message

    async def _supersede_previous(self, thread: Thread) -> None:
        existing = self._store.announcements.get_by_thread(thread.id)
        if existing is None:
            return
        previous = MessageRef(thread.id, existing.message_id)
        try:
            view = await self._surface.fetch_message(thread.id, existing.message_id)
            if view is None or not await self._surface.edit_message(
                previous, views.superseded(view, at=datetime.now(tz=UTC))
            ):
                logger.debug(
                    "Previous announcement is gone",
                    extra={"thread_id": thread.id, "message_id": existing.message_id},
                )
                return
            await self._surface.set_pinned(previous, False)
        except Exception:
            logger.warning(
                "Could not supersede previous announcement",
                extra={"thread_id": thread.id, "message_id": existing.message_id},
                exc_info=True,
            )

    async def _starter_preview(self, thread: Thread) -> str:
        # A forum thread's starter message shares the thread's id.
        try:
            starter = await self._surface.fetch_message(thread.id, thread.id)
        except Exception:
            logger.debug("Could not fetch starter message", extra={"thread_id": thread.id})
            return MISSING_CONTENT_PREVIEW
        if starter is None or not starter.content.strip():
            return MISSING_CONTENT_PREVIEW
        return content_preview(starter.content)

    async def _notify(
        self,
        thread: Thread,
        message: MessageRef,
        license: LicenseTerms,
        backup_allowed: bool,
        author: Actor,
    ) -> None:
        thread_url = f"{self._url_base}/{thread.guild_id}/{thread.id}"
        notification = BackupNotification(
            guild_id=str(thread.guild_id),
            channel_id=str(thread.parent_id),
            thread_id=str(thread.id),
            message_id=str(message.message_id),
            author=NotificationAuthor(
                discord_user_id=str(author.user_id),
                username=author.username,
                display_name=author.display_name,
            ),
            work_info=WorkInfo(
                title=thread.name,
                content_preview=await self._starter_preview(thread),
                license_type=license.name,
                backup_allowed=backup_allowed,
            ),
            urls=NotificationUrls(
                discord_thread=thread_url,
                direct_message=f"{thread_url}/{message.message_id}",
            ),
        )
        try:
            await self._notifier.send_backup_notification(notification)
        except Exception:
            logger.warning(
                "Backup notification failed",
                extra={"thread_id": thread.id, "backup_allowed": backup_allowed},
                exc_info=True,
            )
