"""Test configuration and fixtures.

`FakeSurface` is an in-memory messaging surface backed by the real
`InteractionCollector`. Tests script the user's side of a session as a list of
steps; `FakeSurface.play` feeds each step in once the workflow is waiting for it.
"""

from __future__ import annotations

import asyncio
import itertools
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path
from unittest.mock import Mock

import pytest

from license_autopublisher.config import FlowTimeouts
from license_autopublisher.licenses.models import TemplateLicense
from license_autopublisher.licenses.store import LicenseDataStore
from license_autopublisher.licenses.templates import TemplateCatalog
from license_autopublisher.messaging import views
from license_autopublisher.messaging.collector import InteractionCollector
from license_autopublisher.messaging.surface import (
    Actor,
    ComponentEvent,
    FormSubmission,
    MessageRef,
    Thread,
)
from license_autopublisher.messaging.views import FormView, MessageView
from license_autopublisher.publishing.notifier import WebhookNotifier
from license_autopublisher.publishing.publisher import PublishCoordinator
from license_autopublisher.workflow.state_machine import FlowDependencies

OWNER_ID = 42
OTHER_USER_ID = 7
GUILD_ID = 1
FORUM_ID = 10
THREAD_ID = 500

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
STARTED_AT = NOW - timedelta(hours=1)

FAST_TIMEOUTS = FlowTimeouts(
    guidance=0.2,
    selection=0.2,
    publish_confirmation=0.2,
    first_time_publish=0.2,
    editor_idle=0.3,
    form=0.2,
)

STEP_DEADLINE = 2.0


# -- scripted user steps ------------------------------------------------------


@dataclass(frozen=True)
class Click:
    custom_id: str
    user_id: int = OWNER_ID


@dataclass(frozen=True)
class Select:
    value: str
    user_id: int = OWNER_ID


@dataclass(frozen=True)
class Submit:
    form_id: str
    values: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class AwaitForm:
    """Block until a form is open, without answering it."""


Step = Click | Select | Submit | AwaitForm


class FakeSurface:
    def __init__(self) -> None:
        self.collector = InteractionCollector()
        self._ids = itertools.count(1000)
        self._event_ids = itertools.count(1)
        self.refs: dict[int, MessageRef] = {}
        self.messages: dict[int, MessageView] = {}
        self.sent: list[tuple[int, MessageView]] = []
        self.edited: list[tuple[MessageRef, MessageView]] = []
        self.deleted: list[MessageRef] = []
        self.pins: list[tuple[MessageRef, bool]] = []
        self.responses: list[tuple[ComponentEvent, MessageView, bool]] = []
        self.acknowledged: list[ComponentEvent] = []
        self.followups: list[tuple[ComponentEvent, MessageView]] = []
        self.forms: list[tuple[ComponentEvent, FormView]] = []
        self.fail_deletes = False

    def _new_ref(self, channel_id: int, view: MessageView) -> MessageRef:
        ref = MessageRef(channel_id, next(self._ids), ephemeral=view.ephemeral)
        self.refs[ref.message_id] = ref
        self.messages[ref.message_id] = view
        return ref

    def seed_message(self, channel_id: int, message_id: int, view: MessageView) -> MessageRef:
        ref = MessageRef(channel_id, message_id)
        self.refs[message_id] = ref
        self.messages[message_id] = view
        return ref

    # -- MessagingSurface --

    async def send_message(self, channel_id: int, view: MessageView) -> MessageRef:
        self.sent.append((channel_id, view))
        return self._new_ref(channel_id, view)

    async def edit_message(self, message: MessageRef, view: MessageView) -> bool:
        if message.message_id not in self.messages:
            return False
        self.edited.append((message, view))
        self.messages[message.message_id] = view
        return True

    async def delete_message(self, message: MessageRef) -> None:
        if self.fail_deletes:
            raise RuntimeError("delete failed")
        self.deleted.append(message)
        self.messages.pop(message.message_id, None)

    async def fetch_message(self, channel_id: int, message_id: int) -> MessageView | None:
        return self.messages.get(message_id)

    async def set_pinned(self, message: MessageRef, pinned: bool) -> None:
        self.pins.append((message, pinned))

    async def resolve_actor(self, guild_id: int, user_id: int) -> Actor:
        return Actor(user_id, f"user{user_id}", f"User {user_id}")

    async def respond(
        self, event: ComponentEvent, view: MessageView, *, update: bool = False
    ) -> MessageRef:
        self.responses.append((event, view, update))
        if update:
            self.messages[event.message.message_id] = view
            return event.message
        return self._new_ref(event.message.channel_id, view)

    async def acknowledge(self, event: ComponentEvent) -> None:
        self.acknowledged.append(event)

    async def followup(self, event: ComponentEvent, view: MessageView) -> MessageRef:
        self.followups.append((event, view))
        return self._new_ref(event.message.channel_id, view)

    async def open_form(self, event: ComponentEvent, form: FormView) -> None:
        self.forms.append((event, form))

    async def wait_for_component(
        self, message: MessageRef, *, author_id: int, timeout: float
    ) -> ComponentEvent | None:
        return await self.collector.wait_for_component(
            message, author_id=author_id, timeout=timeout
        )

    async def wait_for_form(
        self, event: ComponentEvent, form_id: str, *, author_id: int, timeout: float
    ) -> FormSubmission | None:
        return await self.collector.wait_for_form(
            event, form_id, author_id=author_id, timeout=timeout
        )

    # -- scripting --

    async def _until(self, ready: Callable[[], object]) -> object:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + STEP_DEADLINE
        while True:
            value = ready()
            if value:
                return value
            if loop.time() > deadline:
                raise AssertionError("workflow never waited for the scripted step")
            await asyncio.sleep(0.001)

    def dismiss(self, message_id: int) -> None:
        """The user closes a message without answering it."""
        self.messages.pop(message_id, None)

    def component_event(
        self, message_id: int, custom_id: str, *, user_id: int, values: tuple[str, ...] = ()
    ) -> ComponentEvent:
        return ComponentEvent(
            event_id=f"evt-{next(self._event_ids)}",
            user_id=user_id,
            message=self.refs[message_id],
            custom_id=custom_id,
            values=values,
        )

    async def play(self, steps: Iterable[Step]) -> None:
        for step in steps:
            if isinstance(step, AwaitForm):
                await self._until(self.collector.pending_forms)
            elif isinstance(step, Submit):
                pending = await self._until(self.collector.pending_forms)
                source_event_id, form_id, author_id = pending[-1]  # type: ignore[index]
                assert form_id == step.form_id
                self.collector.dispatch_form(
                    FormSubmission(
                        event_id=f"evt-{next(self._event_ids)}",
                        source_event_id=source_event_id,
                        user_id=author_id,
                        form_id=form_id,
                        values=step.values,
                    )
                )
            else:
                pending = await self._until(self.collector.pending_components)
                message_id, _ = pending[-1]  # type: ignore[index]
                if isinstance(step, Select):
                    event = self.component_event(
                        message_id,
                        views.LICENSE_SELECTION,
                        user_id=step.user_id,
                        values=(step.value,),
                    )
                else:
                    event = self.component_event(message_id, step.custom_id, user_id=step.user_id)
                self.collector.dispatch_component(event)
            # Let the workflow consume the step before looking for the next wait.
            await asyncio.sleep(0.005)

    def announcements(self) -> list[MessageView]:
        return [view for _, view in self.sent if view.embed and view.embed.title.startswith("License:")]


# -- fixtures -----------------------------------------------------------------


@pytest.fixture
def state_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for the JSON stores."""
    path = tmp_path / "license_state"
    path.mkdir()
    return path


@pytest.fixture
def store(state_dir: Path) -> LicenseDataStore:
    return LicenseDataStore.open(state_dir)


@pytest.fixture
def templates() -> list[TemplateLicense]:
    return [
        TemplateLicense(name="Share with credit", allow_redistribution=True, allow_backup=True),
        TemplateLicense(name="All rights reserved"),
    ]


@pytest.fixture
def catalog(templates: list[TemplateLicense]) -> TemplateCatalog:
    return TemplateCatalog.from_templates(templates)


@pytest.fixture
def surface() -> FakeSurface:
    fake = FakeSurface()
    fake.seed_message(THREAD_ID, THREAD_ID, MessageView(content="Here is my latest drawing!"))
    return fake


@pytest.fixture
def notifier() -> Mock:
    return Mock(spec=WebhookNotifier)


@pytest.fixture
def publisher(store: LicenseDataStore, surface: FakeSurface, notifier: Mock) -> PublishCoordinator:
    return PublishCoordinator(store=store, surface=surface, notifier=notifier)


@pytest.fixture
def deps(
    store: LicenseDataStore,
    catalog: TemplateCatalog,
    surface: FakeSurface,
    publisher: PublishCoordinator,
) -> FlowDependencies:
    return FlowDependencies(
        store=store,
        catalog=catalog,
        surface=surface,
        publisher=publisher,
        timeouts=FAST_TIMEOUTS,
        max_trigger_age_seconds=300.0,
        started_at=STARTED_AT,
        clock=lambda: NOW,
    )


def make_thread(**overrides: object) -> Thread:
    values: dict[str, object] = {
        "id": THREAD_ID,
        "guild_id": GUILD_ID,
        "parent_id": FORUM_ID,
        "name": "My artwork",
        "owner_id": OWNER_ID,
        "created_at": NOW - timedelta(seconds=5),
        "parent_is_forum": True,
    }
    values.update(overrides)
    return Thread(**values)  # type: ignore[arg-type]


@pytest.fixture
def thread() -> Thread:
    return make_thread()
