"""The guided auto-publish workflow for one freshly created thread.

Each state is a small frozen value. `AutoPublishFlow` runs one handler per state;
the decisions inside those handlers live in pure `route_*` functions so they can be
tested without a messaging surface.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from license_autopublisher.config import FlowTimeouts
from license_autopublisher.errors import (
    IllegalTransitionError,
    TemplateNotFound,
    ValidationFailed,
    user_facing_message,
)
from license_autopublisher.licenses.models import (
    LicenseDraft,
    LicenseRecord,
    LicenseTerms,
    TemplateLicense,
    TemplateLicenseRef,
    UserOwnedLicense,
    UserPreference,
)
from license_autopublisher.licenses.store import LicenseDataStore
from license_autopublisher.licenses.templates import TemplateCatalog, find_template
from license_autopublisher.logging import session_logger
from license_autopublisher.messaging import views
from license_autopublisher.messaging.surface import (
    Actor,
    ComponentEvent,
    MessageRef,
    MessagingSurface,
    Thread,
)
from license_autopublisher.publishing.publisher import PublishCoordinator

from .editor import EditorOutcome, EditorResult, LicenseDraftEditor

logger = logging.getLogger(__name__)

DEFAULT_LICENSE_NAME = "My License"


# -- states ------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Initial:
    pass


@dataclass(frozen=True, slots=True)
class AwaitingGuidance:
    pass


@dataclass(frozen=True, slots=True)
class EditingLicense:
    draft: LicenseDraft
    event: ComponentEvent


@dataclass(frozen=True, slots=True)
class AwaitingLicenseReselection:
    event: ComponentEvent


@dataclass(frozen=True, slots=True)
class ConfirmingSave:
    record: LicenseRecord
    event: ComponentEvent


@dataclass(frozen=True, slots=True)
class ConfirmingPublish:
    license: LicenseTerms
    backup_allowed: bool
    prompt: MessageRef
    first_time: bool = False


@dataclass(frozen=True, slots=True)
class Done:
    reason: str


FlowState = (
    Initial
    | AwaitingGuidance
    | EditingLicense
    | AwaitingLicenseReselection
    | ConfirmingSave
    | ConfirmingPublish
    | Done
)

ALLOWED_TRANSITIONS: dict[type, set[type]] = {
    Initial: {AwaitingGuidance, ConfirmingPublish, Done},
    AwaitingGuidance: {EditingLicense, Done},
    EditingLicense: {ConfirmingSave, AwaitingLicenseReselection, Done},
    AwaitingLicenseReselection: {EditingLicense, Done},
    ConfirmingSave: {ConfirmingPublish, Done},
    ConfirmingPublish: {Done},
    Done: set(),
}


def check_transition(current: FlowState, to: FlowState) -> None:
    allowed = ALLOWED_TRANSITIONS.get(type(current), set())
    if type(to) not in allowed:
        raise IllegalTransitionError(
            f"Illegal transition: {type(current).__name__} -> {type(to).__name__}"
        )


# -- routing -----------------------------------------------------------------


class InitialRoute(str, Enum):
    GUIDE = "guide"
    SILENT = "silent"
    PUBLISH = "publish"
    CONFIRM = "confirm"


class Choice(str, Enum):
    ACCEPT = "accept"
    DECLINE = "decline"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class ResolvedLicense:
    license: LicenseTerms
    backup_allowed: bool


@dataclass(frozen=True, slots=True)
class Selection:
    """A menu choice: a fresh license, a template, or leaving setup.

    `unknown` marks a value the menu never offered.
    """

    template: TemplateLicense | None = None
    exit: bool = False
    unknown: bool = False

    @property
    def is_new(self) -> bool:
        return self.template is None and not self.exit and not self.unknown


def is_fresh(
    thread: Thread, *, started_at: datetime, now: datetime, max_age_seconds: float
) -> bool:
    """Threads from before startup, or older than the age bound, are replays."""

    if thread.created_at < started_at:
        return False
    return (now - thread.created_at).total_seconds() <= max_age_seconds


def resolve_default_license(
    pref: UserPreference, store: LicenseDataStore, templates: list[TemplateLicense]
) -> ResolvedLicense | None:
    ref = pref.default_license_ref
    if isinstance(ref, UserOwnedLicense):
        record = store.licenses.get(ref.license_id, pref.user_id)
        if record is None:
            return None
        return ResolvedLicense(record, record.allow_backup)
    if isinstance(ref, TemplateLicenseRef):
        template = find_template(templates, ref.name)
        if template is not None:
            return ResolvedLicense(
                template, pref.template_backup_override.apply(template.allow_backup)
            )
    return None


def route_initial(pref: UserPreference | None, resolved: ResolvedLicense | None) -> InitialRoute:
    if pref is None:
        return InitialRoute.GUIDE
    if not pref.auto_publish_enabled or resolved is None:
        return InitialRoute.SILENT
    if pref.skip_confirmation:
        return InitialRoute.PUBLISH
    return InitialRoute.CONFIRM


def route_choice(event: ComponentEvent | None, *, accept: str, decline: str) -> Choice:
    if event is None:
        return Choice.TIMEOUT
    if event.custom_id == accept:
        return Choice.ACCEPT
    if event.custom_id == decline:
        return Choice.DECLINE
    return Choice.UNKNOWN


def route_selection(
    event: ComponentEvent, templates: list[TemplateLicense], *, allow_exit: bool = False
) -> Selection:
    value = event.selected
    if value == views.NEW_LICENSE_OPTION:
        return Selection()
    if allow_exit and value == views.EXIT_SETUP_OPTION:
        return Selection(exit=True)
    if value is not None and value.startswith(views.TEMPLATE_OPTION_PREFIX):
        name = value[len(views.TEMPLATE_OPTION_PREFIX) :]
        template = find_template(templates, name)
        if template is None:
            raise TemplateNotFound(name)
        return Selection(template=template)
    return Selection(unknown=True)


def route_editor_outcome(outcome: EditorOutcome) -> type:
    """Which state class an editor outcome leads to."""

    if outcome.event is None or outcome.result is EditorResult.TIMED_OUT:
        return Done
    if outcome.result is EditorResult.SAVED:
        return ConfirmingSave
    return AwaitingLicenseReselection


def default_license_name(existing: list[str]) -> str:
    taken = set(existing)
    n = len(existing) + 1
    while f"{DEFAULT_LICENSE_NAME} {n}" in taken:
        n += 1
    return f"{DEFAULT_LICENSE_NAME} {n}"


def draft_for(selection: Selection, existing_names: list[str]) -> LicenseDraft:
    if selection.template is not None:
        return LicenseDraft.from_terms(selection.template)
    return LicenseDraft(name=default_license_name(existing_names))


# -- driver ------------------------------------------------------------------


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class FlowDependencies:
    store: LicenseDataStore
    catalog: TemplateCatalog
    surface: MessagingSurface
    publisher: PublishCoordinator
    timeouts: FlowTimeouts = field(default_factory=FlowTimeouts)
    max_trigger_age_seconds: float = 300.0
    started_at: datetime = field(default_factory=_utc_now)
    clock: Callable[[], datetime] = _utc_now


class AutoPublishFlow:
    """One workflow session, bound to one thread and its owner."""

    def __init__(self, deps: FlowDependencies, thread: Thread) -> None:
        if thread.owner_id is None:
            raise ValueError("thread has no owner")
        self._deps = deps
        self._surface = deps.surface
        self._store = deps.store
        self._thread = thread
        self._user_id: int = thread.owner_id
        self._log = session_logger(logger, thread_id=thread.id, user_id=self._user_id)
        self._templates: list[TemplateLicense] | None = None
        self._actor: Actor | None = None
        self._transient: list[MessageRef] = []
        self._last_event: ComponentEvent | None = None
        self.state: FlowState = Initial()

    @property
    def templates(self) -> list[TemplateLicense]:
        # One catalog snapshot per session.
        if self._templates is None:
            self._templates = self._deps.catalog.get_all()
        return self._templates

    async def run(self) -> Done:
        self._log.info("Auto-publish session started")
        try:
            while not isinstance(self.state, Done):
                next_state = await self._step(self.state)
                check_transition(self.state, next_state)
                self._log.debug(
                    "Workflow transition",
                    extra={"from": type(self.state).__name__, "to": type(next_state).__name__},
                )
                self.state = next_state
        except Exception as exc:
            self._log.exception(
                "Auto-publish session failed", extra={"state": type(self.state).__name__}
            )
            await self._report_failure(exc)
            raise
        finally:
            await self._cleanup()

        self._log.info("Auto-publish session finished", extra={"reason": self.state.reason})
        return self.state

    async def _step(self, state: FlowState) -> FlowState:
        if isinstance(state, Initial):
            return await self._initial()
        if isinstance(state, AwaitingGuidance):
            return await self._guidance()
        if isinstance(state, EditingLicense):
            return await self._editing(state)
        if isinstance(state, AwaitingLicenseReselection):
            return await self._reselection(state)
        if isinstance(state, ConfirmingSave):
            return await self._confirming_save(state)
        if isinstance(state, ConfirmingPublish):
            return await self._confirming_publish(state)
        raise IllegalTransitionError(f"No handler for {type(state).__name__}")

    # -- helpers --

    async def _wait(self, message: MessageRef, timeout: float) -> ComponentEvent | None:
        event = await self._surface.wait_for_component(
            message, author_id=self._user_id, timeout=timeout
        )
        if event is not None:
            self._last_event = event
        return event

    def _flag(self, message: MessageRef) -> MessageRef:
        if message not in self._transient:
            self._transient.append(message)
        return message

    def _unflag(self, message: MessageRef) -> None:
        if message in self._transient:
            self._transient.remove(message)

    async def _discard(self, message: MessageRef) -> None:
        self._unflag(message)
        try:
            await self._surface.delete_message(message)
        except Exception:
            self._log.debug(
                "Could not delete message",
                extra={"message_id": message.message_id},
                exc_info=True,
            )

    async def _unexpected(self, event: ComponentEvent) -> Done:
        self._log.debug(
            "Ending session on unexpected event",
            extra={"custom_id": event.custom_id, "values": list(event.values)},
        )
        await self._surface.acknowledge(event)
        return Done("unexpected_event")

    async def _author(self) -> Actor:
        if self._actor is None:
            self._actor = await self._surface.resolve_actor(self._thread.guild_id, self._user_id)
        return self._actor

    async def _cleanup(self) -> None:
        for message in list(self._transient):
            await self._discard(message)

    async def _report_failure(self, exc: BaseException) -> None:
        if self._last_event is None:
            return
        try:
            await self._surface.followup(
                self._last_event, views.notice(user_facing_message(exc))
            )
        except Exception:
            self._log.debug("Could not report failure to user", exc_info=True)

    # -- state handlers --

    async def _initial(self) -> FlowState:
        now = self._deps.clock()
        if not is_fresh(
            self._thread,
            started_at=self._deps.started_at,
            now=now,
            max_age_seconds=self._deps.max_trigger_age_seconds,
        ):
            return Done("stale_trigger")

        pref = self._store.preferences.get(self._user_id)
        resolved = None
        if pref is not None and pref.auto_publish_enabled:
            resolved = resolve_default_license(pref, self._store, self.templates)

        route = route_initial(pref, resolved)
        if route is InitialRoute.GUIDE:
            return AwaitingGuidance()
        if route is InitialRoute.SILENT or resolved is None:
            return Done("auto_publish_off")

        author = await self._author()
        if route is InitialRoute.PUBLISH:
            await self._deps.publisher.publish(
                self._thread, resolved.license, resolved.backup_allowed, author
            )
            return Done("published")

        prompt = await self._surface.send_message(
            self._thread.id, views.auto_publish_confirmation(resolved.license, author.display_name)
        )
        return ConfirmingPublish(resolved.license, resolved.backup_allowed, self._flag(prompt))

    async def _guidance(self) -> FlowState:
        prompt = self._flag(
            await self._surface.send_message(self._thread.id, views.guidance_prompt())
        )
        event = await self._wait(prompt, self._deps.timeouts.guidance)
        choice = route_choice(event, accept=views.ENABLE_SETUP, decline=views.DISABLE_SETUP)
        if choice is Choice.TIMEOUT or event is None:
            return Done("guidance_timeout")
        if choice is Choice.UNKNOWN:
            return await self._unexpected(event)

        await self._discard(prompt)
        if choice is Choice.DECLINE:
            self._store.preferences.set_auto_publish(self._user_id, False)
            await self._surface.respond(event, views.notice(views.DISABLED_NOTICE))
            return Done("declined")

        self._store.preferences.set_auto_publish(self._user_id, True)
        menu = self._flag(
            await self._surface.respond(event, views.license_selection_menu(self.templates))
        )
        picked = await self._wait(menu, self._deps.timeouts.selection)
        if picked is None:
            return Done("selection_timeout")
        selection = route_selection(picked, self.templates)
        if selection.unknown:
            return await self._unexpected(picked)
        return self._editing_state(selection, picked)

    def _editing_state(self, selection: Selection, event: ComponentEvent) -> EditingLicense:
        names = [r.name for r in self._store.licenses.list_by_owner(self._user_id)]
        return EditingLicense(draft_for(selection, names), event)

    async def _editing(self, state: EditingLicense) -> FlowState:
        editor = LicenseDraftEditor(
            self._surface, author_id=self._user_id, timeouts=self._deps.timeouts
        )
        outcome = await editor.run(state.draft, state.event)
        self._flag(outcome.panel)
        if outcome.event is not None:
            self._last_event = outcome.event

        target = route_editor_outcome(outcome)
        if target is Done or outcome.event is None:
            return Done("editor_timeout")
        if target is AwaitingLicenseReselection:
            return AwaitingLicenseReselection(outcome.event)

        try:
            record = self._store.licenses.create(self._user_id, outcome.draft.to_terms())
        except ValidationFailed as exc:
            self._log.info("License save rejected", extra={"reason": type(exc).__name__})
            await self._surface.respond(outcome.event, views.notice(str(exc)), update=True)
            self._unflag(outcome.panel)
            return Done("save_rejected")

        self._store.preferences.set_default_license(self._user_id, UserOwnedLicense(record.id))
        self._store.preferences.set_auto_publish(self._user_id, True)
        await self._surface.respond(
            outcome.event, views.notice(views.EDITOR_SAVED_NOTICE), update=True
        )
        self._unflag(outcome.panel)
        return ConfirmingSave(record, outcome.event)

    async def _reselection(self, state: AwaitingLicenseReselection) -> FlowState:
        menu = self._flag(
            await self._surface.respond(
                state.event,
                views.license_selection_menu(self.templates, include_exit=True),
                update=True,
            )
        )
        picked = await self._wait(menu, self._deps.timeouts.selection)
        if picked is None:
            return Done("selection_timeout")
        selection = route_selection(picked, self.templates, allow_exit=True)
        if selection.unknown:
            return await self._unexpected(picked)
        if selection.exit:
            await self._surface.respond(picked, views.notice(views.EXIT_NOTICE), update=True)
            self._unflag(menu)
            return Done("exited")
        return self._editing_state(selection, picked)

    async def _confirming_save(self, state: ConfirmingSave) -> FlowState:
        # The follow-up stays visible if it goes unanswered.
        prompt = await self._surface.followup(
            state.event, views.new_license_publish_prompt(state.record.name)
        )
        return ConfirmingPublish(state.record, state.record.allow_backup, prompt, first_time=True)

    async def _confirming_publish(self, state: ConfirmingPublish) -> FlowState:
        if state.first_time:
            timeout = self._deps.timeouts.first_time_publish
            accept, decline = views.CONFIRM_PUBLISH_NEW_LICENSE, views.SKIP_PUBLISH_NEW_LICENSE
        else:
            timeout = self._deps.timeouts.publish_confirmation
            accept, decline = views.CONFIRM_AUTO_PUBLISH, views.CANCEL_AUTO_PUBLISH

        event = await self._wait(state.prompt, timeout)
        choice = route_choice(event, accept=accept, decline=decline)
        if choice is Choice.TIMEOUT or event is None:
            return Done("confirmation_timeout")
        if choice is Choice.UNKNOWN:
            return await self._unexpected(event)

        if choice is Choice.ACCEPT:
            await self._deps.publisher.publish(
                self._thread, state.license, state.backup_allowed, await self._author()
            )
            text = views.FIRST_TIME_PUBLISHED_NOTICE if state.first_time else views.PUBLISHED_NOTICE
            reason = "published"
        else:
            text = (
                views.FIRST_TIME_SKIPPED_NOTICE
                if state.first_time
                else views.PUBLISH_CANCELLED_NOTICE
            )
            reason = "publish_declined"

        if state.first_time:
            # The follow-up prompt turns into the final notice.
            await self._surface.respond(event, views.notice(text), update=True)
        else:
            await self._discard(state.prompt)
            await self._surface.respond(event, views.notice(text))
        return Done(reason)
