"""Correlated-event waits.

Adapters push every incoming interaction into `InteractionCollector.dispatch_*`;
the workflow awaits `wait_for_*`. A waiter only ever resolves with an event from
the message (or form) it is watching and from the author it is scoped to; anything
else is left for other waiters or dropped.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from .surface import ComponentEvent, FormSubmission, MessageRef

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _ComponentWaiter:
    message_id: int
    author_id: int
    future: asyncio.Future[ComponentEvent]

    def matches(self, event: ComponentEvent) -> bool:
        return event.message.message_id == self.message_id and event.user_id == self.author_id


@dataclass(slots=True)
class _FormWaiter:
    source_event_id: str
    form_id: str
    author_id: int
    future: asyncio.Future[FormSubmission]

    def matches(self, submission: FormSubmission) -> bool:
        return (
            submission.source_event_id == self.source_event_id
            and submission.form_id == self.form_id
            and submission.user_id == self.author_id
        )


class InteractionCollector:
    def __init__(self) -> None:
        self._components: list[_ComponentWaiter] = []
        self._forms: list[_FormWaiter] = []

    async def wait_for_component(
        self, message: MessageRef, *, author_id: int, timeout: float
    ) -> ComponentEvent | None:
        future: asyncio.Future[ComponentEvent] = asyncio.get_running_loop().create_future()
        waiter = _ComponentWaiter(message.message_id, author_id, future)
        self._components.append(waiter)
        try:
            return await asyncio.wait_for(future, timeout=max(timeout, 0.0))
        except TimeoutError:
            logger.debug(
                "Component wait timed out",
                extra={"message_id": message.message_id, "author_id": author_id},
            )
            return None
        finally:
            self._components.remove(waiter)

    async def wait_for_form(
        self, event: ComponentEvent, form_id: str, *, author_id: int, timeout: float
    ) -> FormSubmission | None:
        future: asyncio.Future[FormSubmission] = asyncio.get_running_loop().create_future()
        waiter = _FormWaiter(event.event_id, form_id, author_id, future)
        self._forms.append(waiter)
        try:
            return await asyncio.wait_for(future, timeout=max(timeout, 0.0))
        except TimeoutError:
            logger.debug("Form wait timed out", extra={"form_id": form_id, "author_id": author_id})
            return None
        finally:
            self._forms.remove(waiter)

    def dispatch_component(self, event: ComponentEvent) -> bool:
        """Hand `event` to the first matching waiter. Returns whether one took it."""

        for waiter in self._components:
            if waiter.matches(event) and not waiter.future.done():
                waiter.future.set_result(event)
                return True
        logger.debug(
            "Ignoring uncorrelated component event",
            extra={
                "message_id": event.message.message_id,
                "user_id": event.user_id,
                "custom_id": event.custom_id,
            },
        )
        return False

    def dispatch_form(self, submission: FormSubmission) -> bool:
        for waiter in self._forms:
            if waiter.matches(submission) and not waiter.future.done():
                waiter.future.set_result(submission)
                return True
        logger.debug(
            "Ignoring uncorrelated form submission",
            extra={"form_id": submission.form_id, "user_id": submission.user_id},
        )
        return False

    def pending_components(self) -> list[tuple[int, int]]:
        """(message_id, author_id) for every open component wait."""

        return [(w.message_id, w.author_id) for w in self._components if not w.future.done()]

    def pending_forms(self) -> list[tuple[str, str, int]]:
        """(source_event_id, form_id, author_id) for every open form wait."""

        return [
            (w.source_event_id, w.form_id, w.author_id) for w in self._forms if not w.future.done()
        ]
