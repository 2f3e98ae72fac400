"""Interactive editor for a license draft.

The editor owns one ephemeral panel. Toggles flip a permission and re-render in
place; the two text fields open a form. Save and cancel end the session and are
handed back unanswered so the caller decides what the panel turns into next.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum

from license_autopublisher.config import FlowTimeouts
from license_autopublisher.errors import MissingCorrelation
from license_autopublisher.licenses.models import LicenseDraft
from license_autopublisher.messaging import views
from license_autopublisher.messaging.surface import (
    ComponentEvent,
    FormSubmission,
    MessageRef,
    MessagingSurface,
)

logger = logging.getLogger(__name__)

_TOGGLES = {
    views.TOGGLE_REDISTRIBUTION: "allow_redistribution",
    views.TOGGLE_MODIFICATION: "allow_modification",
    views.TOGGLE_BACKUP: "allow_backup",
}


class EditorResult(str, Enum):
    SAVED = "saved"
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True, slots=True)
class EditorOutcome:
    result: EditorResult
    draft: LicenseDraft
    panel: MessageRef
    # The save/cancel event, still unanswered. None when the editor timed out.
    event: ComponentEvent | None


def apply_name(draft: LicenseDraft, raw: str) -> LicenseDraft:
    name = raw.strip()[: views.NAME_MAX_LENGTH]
    return draft.renamed(name) if name else draft


def apply_restrictions(draft: LicenseDraft, raw: str) -> LicenseDraft:
    note = raw.strip()[: views.RESTRICTIONS_MAX_LENGTH]
    return draft.with_note(note or None)


class LicenseDraftEditor:
    def __init__(self, surface: MessagingSurface, *, author_id: int, timeouts: FlowTimeouts) -> None:
        self._surface = surface
        self._author_id = author_id
        self._timeouts = timeouts

    async def run(self, draft: LicenseDraft, first_event: ComponentEvent) -> EditorOutcome:
        """Edit `draft` until the user saves, cancels, or goes idle.

        The panel replaces the message `first_event` came from.
        """

        loop = asyncio.get_running_loop()
        panel = await self._surface.respond(first_event, views.editor_panel(draft), update=True)
        deadline = loop.time() + self._timeouts.editor_idle
        queued: ComponentEvent | None = None

        while True:
            if queued is not None:
                event, queued = queued, None
            else:
                remaining = deadline - loop.time()
                event = None
                if remaining > 0:
                    event = await self._surface.wait_for_component(
                        panel, author_id=self._author_id, timeout=remaining
                    )
                if event is None:
                    logger.debug("Draft editor went idle", extra={"author_id": self._author_id})
                    return EditorOutcome(EditorResult.TIMED_OUT, draft, panel, None)

            deadline = loop.time() + self._timeouts.editor_idle
            action = event.custom_id

            if action == views.SAVE_LICENSE:
                return EditorOutcome(EditorResult.SAVED, draft, panel, event)
            if action == views.CANCEL_LICENSE:
                return EditorOutcome(EditorResult.CANCELLED, draft, panel, event)

            if action in _TOGGLES:
                draft = draft.toggled(_TOGGLES[action])
                await self._surface.respond(event, views.editor_panel(draft), update=True)
                continue

            if action in (views.EDIT_NAME, views.EDIT_RESTRICTIONS):
                if action == views.EDIT_NAME:
                    form = views.edit_name_form(draft.name)
                else:
                    form = views.edit_restrictions_form(draft.restrictions_note)
                await self._surface.open_form(event, form)
                timeout = min(self._timeouts.form, deadline - loop.time())
                submitted = await self._wait_form_or_component(event, form.custom_id, panel, timeout)
                if isinstance(submitted, FormSubmission):
                    if action == views.EDIT_NAME:
                        draft = apply_name(draft, submitted.value(views.NAME_INPUT))
                    else:
                        draft = apply_restrictions(draft, submitted.value(views.RESTRICTIONS_INPUT))
                    deadline = loop.time() + self._timeouts.editor_idle
                    if not await self._surface.edit_message(panel, views.editor_panel(draft)):
                        raise MissingCorrelation(
                            f"Editor panel {panel.message_id} no longer exists"
                        )
                elif isinstance(submitted, ComponentEvent):
                    logger.debug(
                        "Form abandoned for a newer action",
                        extra={"form_id": form.custom_id, "custom_id": submitted.custom_id},
                    )
                    queued = submitted
                continue

            logger.debug("Ignoring unknown editor action", extra={"custom_id": action})
            await self._surface.acknowledge(event)

    async def _wait_form_or_component(
        self, event: ComponentEvent, form_id: str, panel: MessageRef, timeout: float
    ) -> FormSubmission | ComponentEvent | None:
        """Race the form submission against a fresh click on the panel."""

        form_wait = asyncio.create_task(
            self._surface.wait_for_form(event, form_id, author_id=self._author_id, timeout=timeout)
        )
        click_wait = asyncio.create_task(
            self._surface.wait_for_component(panel, author_id=self._author_id, timeout=timeout)
        )
        tasks = {form_wait, click_wait}
        try:
            await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        for task in (form_wait, click_wait):
            if task.cancelled() or task.exception() is not None:
                continue
            result = task.result()
            if result is not None:
                return result
        for task in (form_wait, click_wait):
            error = None if task.cancelled() else task.exception()
            if error is not None:
                raise error
        return None
