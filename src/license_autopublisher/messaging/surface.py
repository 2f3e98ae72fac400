"""The messaging surface the workflow talks through.

A chat-platform adapter implements `MessagingSurface`; the workflow only ever sees
the value types below, never platform objects.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from .views import FormView, MessageView


@dataclass(frozen=True, slots=True)
class MessageRef:
    """Handle to a message the surface has sent."""

    channel_id: int
    message_id: int
    ephemeral: bool = False


@dataclass(frozen=True, slots=True)
class Actor:
    user_id: int
    username: str
    display_name: str


@dataclass(frozen=True, slots=True)
class Thread:
    """A freshly created forum thread (the trigger's container)."""

    id: int
    guild_id: int
    parent_id: int
    name: str
    owner_id: int | None
    created_at: datetime
    parent_is_forum: bool = True


@dataclass(frozen=True, slots=True)
class ComponentEvent:
    """A button press or menu selection on a specific message."""

    event_id: str
    user_id: int
    message: MessageRef
    custom_id: str
    values: tuple[str, ...] = ()

    @property
    def selected(self) -> str | None:
        return self.values[0] if self.values else None


@dataclass(frozen=True, slots=True)
class FormSubmission:
    """A submitted text form, correlated to the event that opened it."""

    event_id: str
    source_event_id: str
    user_id: int
    form_id: str
    values: Mapping[str, str] = field(default_factory=dict)

    def value(self, input_id: str) -> str:
        return self.values.get(input_id, "")


class MessagingSurface(Protocol):
    async def send_message(self, channel_id: int, view: MessageView) -> MessageRef: ...

    async def edit_message(self, message: MessageRef, view: MessageView) -> bool:
        """Replace a message's content. False when the message no longer exists."""
        ...

    async def delete_message(self, message: MessageRef) -> None: ...

    async def fetch_message(self, channel_id: int, message_id: int) -> MessageView | None: ...

    async def set_pinned(self, message: MessageRef, pinned: bool) -> None: ...

    async def resolve_actor(self, guild_id: int, user_id: int) -> Actor: ...

    async def respond(
        self, event: ComponentEvent, view: MessageView, *, update: bool = False
    ) -> MessageRef:
        """Answer an event: a new reply, or (`update=True`) edit the message it came from."""
        ...

    async def acknowledge(self, event: ComponentEvent) -> None:
        """Accept an event without changing anything visible."""
        ...

    async def followup(self, event: ComponentEvent, view: MessageView) -> MessageRef: ...

    async def open_form(self, event: ComponentEvent, form: FormView) -> None: ...

    async def wait_for_component(
        self, message: MessageRef, *, author_id: int, timeout: float
    ) -> ComponentEvent | None:
        """Next event on `message` from `author_id`, or None once `timeout` elapses."""
        ...

    async def wait_for_form(
        self, event: ComponentEvent, form_id: str, *, author_id: int, timeout: float
    ) -> FormSubmission | None: ...
