"""Entry point for "a thread was created" events."""

from __future__ import annotations

import logging
from collections.abc import Collection

from license_autopublisher.messaging.surface import Thread

from .dedup import TriggerDeduplicator
from .state_machine import AutoPublishFlow, Done, FlowDependencies

logger = logging.getLogger(__name__)


def is_eligible(thread: Thread, allowed_forum_channels: Collection[int]) -> bool:
    if not thread.parent_is_forum:
        return False
    if allowed_forum_channels and thread.parent_id not in allowed_forum_channels:
        return False
    return thread.owner_id is not None


async def handle_thread_created(
    thread: Thread,
    deps: FlowDependencies,
    dedup: TriggerDeduplicator,
    *,
    allowed_forum_channels: Collection[int] = (),
) -> Done | None:
    """Run one workflow session for `thread`.

    Returns the terminal state, or None when the trigger was skipped or the
    session failed. Failures are logged here and never raised to the caller.
    """

    if not is_eligible(thread, allowed_forum_channels):
        logger.debug(
            "Thread not eligible for auto-publish",
            extra={"thread_id": thread.id, "parent_id": thread.parent_id},
        )
        return None
    if not dedup.admit(thread.id):
        return None

    try:
        return await AutoPublishFlow(deps, thread).run()
    except Exception:
        logger.exception(
            "Auto-publish workflow aborted",
            extra={"thread_id": thread.id, "user_id": thread.owner_id},
        )
        return None
