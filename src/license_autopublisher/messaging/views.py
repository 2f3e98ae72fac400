"""Platform-neutral views for every prompt the workflow shows.

Control ids are part of the workflow contract (events are routed on them); the
wording is cosmetic and adapters are free to restyle it.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum

from license_autopublisher.licenses.models import LicenseDraft, LicenseTerms, TemplateLicense

# Guidance prompt (first-time users)
ENABLE_SETUP = "enable_auto_publish_setup"
DISABLE_SETUP = "disable_auto_publish_setup"

# Template / new-license menu
LICENSE_SELECTION = "license_selection"
NEW_LICENSE_OPTION = "new_license"
TEMPLATE_OPTION_PREFIX = "template:"
EXIT_SETUP_OPTION = "exit_setup"

# Publish confirmation for returning users
CONFIRM_AUTO_PUBLISH = "confirm_auto_publish"
CANCEL_AUTO_PUBLISH = "cancel_auto_publish"

# Publish confirmation after first-time setup
CONFIRM_PUBLISH_NEW_LICENSE = "confirm_publish_new_license"
SKIP_PUBLISH_NEW_LICENSE = "skip_publish_new_license"

# Draft editor
EDIT_NAME = "edit_name"
EDIT_RESTRICTIONS = "edit_restrictions"
TOGGLE_REDISTRIBUTION = "toggle_redistribution"
TOGGLE_MODIFICATION = "toggle_modification"
TOGGLE_BACKUP = "toggle_backup"
SAVE_LICENSE = "save_license"
CANCEL_LICENSE = "cancel_license"

EDIT_NAME_FORM = "edit_name_form"
EDIT_RESTRICTIONS_FORM = "edit_restrictions_form"
NAME_INPUT = "name_input"
RESTRICTIONS_INPUT = "restrictions_input"

NAME_MAX_LENGTH = 100
RESTRICTIONS_MAX_LENGTH = 1000

SUPERSEDED_PREFIX = "[Superseded] "


class ButtonStyle(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"
    SUCCESS = "success"
    DANGER = "danger"


@dataclass(frozen=True, slots=True)
class Button:
    custom_id: str
    label: str
    style: ButtonStyle = ButtonStyle.SECONDARY


@dataclass(frozen=True, slots=True)
class SelectOption:
    value: str
    label: str
    description: str = ""


@dataclass(frozen=True, slots=True)
class SelectMenu:
    custom_id: str
    options: tuple[SelectOption, ...]
    placeholder: str = ""


Control = Button | SelectMenu


@dataclass(frozen=True, slots=True)
class EmbedField:
    name: str
    value: str
    inline: bool = True


@dataclass(frozen=True, slots=True)
class Embed:
    title: str
    description: str = ""
    fields: tuple[EmbedField, ...] = ()
    footer: str = ""
    timestamp: datetime | None = None


@dataclass(frozen=True, slots=True)
class MessageView:
    """What a message shows. `rows` are rows of interactive controls."""

    content: str = ""
    embed: Embed | None = None
    rows: tuple[tuple[Control, ...], ...] = ()
    ephemeral: bool = False

    @property
    def control_ids(self) -> list[str]:
        return [control.custom_id for row in self.rows for control in row]


@dataclass(frozen=True, slots=True)
class TextInput:
    custom_id: str
    label: str
    value: str = ""
    placeholder: str = ""
    min_length: int = 0
    max_length: int = 4000
    required: bool = True
    multiline: bool = False


@dataclass(frozen=True, slots=True)
class FormView:
    custom_id: str
    title: str
    inputs: tuple[TextInput, ...] = field(default_factory=tuple)


def _yes_no(value: bool) -> str:
    return "Allowed" if value else "Not allowed"


def _license_fields(terms: LicenseTerms | LicenseDraft, backup_allowed: bool) -> tuple[EmbedField, ...]:
    return (
        EmbedField("Redistribution", _yes_no(terms.allow_redistribution)),
        EmbedField("Modification", _yes_no(terms.allow_modification)),
        EmbedField("Backup", _yes_no(backup_allowed)),
        EmbedField("Commercial use", _yes_no(False)),
        EmbedField("Restrictions", terms.restrictions_note or "No extra restrictions", inline=False),
    )


def guidance_prompt() -> MessageView:
    return MessageView(
        content=(
            "Hi! You just created a new thread. Would you like a license to be "
            "added to your threads automatically?"
        ),
        rows=(
            (
                Button(ENABLE_SETUP, "Enable", ButtonStyle.SUCCESS),
                Button(DISABLE_SETUP, "No thanks", ButtonStyle.DANGER),
            ),
        ),
    )


def license_selection_menu(
    templates: list[TemplateLicense], *, include_exit: bool = False, content: str = ""
) -> MessageView:
    options = [SelectOption(NEW_LICENSE_OPTION, "Create a new license", "Start from scratch")]
    options.extend(
        SelectOption(f"{TEMPLATE_OPTION_PREFIX}{t.name}", t.name, "Based on a template")
        for t in templates
    )
    if include_exit:
        options.append(SelectOption(EXIT_SETUP_OPTION, "Exit setup", "Stop for now"))
    return MessageView(
        content=content or "Choose the license to use:",
        rows=((SelectMenu(LICENSE_SELECTION, tuple(options), "Choose a license"),),),
        ephemeral=True,
    )


def auto_publish_confirmation(terms: LicenseTerms, display_name: str) -> MessageView:
    embed = Embed(
        title="Ready to publish a license",
        description="Auto-publish is on. Publish the following license in this thread?",
        fields=_license_fields(terms, terms.allow_backup),
        footer=f"Author: {display_name}",
        timestamp=datetime.now(tz=UTC),
    )
    return MessageView(
        embed=embed,
        rows=(
            (
                Button(CONFIRM_AUTO_PUBLISH, "Publish", ButtonStyle.SUCCESS),
                Button(CANCEL_AUTO_PUBLISH, "Cancel", ButtonStyle.DANGER),
            ),
        ),
    )


def new_license_publish_prompt(license_name: str) -> MessageView:
    return MessageView(
        content=(
            f"License {license_name!r} was created and set as your default.\n\n"
            "Publish it in this thread now?"
        ),
        rows=(
            (
                Button(CONFIRM_PUBLISH_NEW_LICENSE, "Yes, publish", ButtonStyle.SUCCESS),
                Button(SKIP_PUBLISH_NEW_LICENSE, "Not now", ButtonStyle.SECONDARY),
            ),
        ),
        ephemeral=True,
    )


def _toggle(custom_id: str, label: str, enabled: bool) -> Button:
    verb = "Disable" if enabled else "Enable"
    style = ButtonStyle.SUCCESS if enabled else ButtonStyle.SECONDARY
    return Button(custom_id, f"{verb} {label}", style)


def editor_panel(draft: LicenseDraft) -> MessageView:
    embed = Embed(
        title=f"Editing license: {draft.name}",
        fields=_license_fields(draft, draft.allow_backup),
    )
    return MessageView(
        embed=embed,
        rows=(
            (
                Button(EDIT_NAME, "Edit name"),
                Button(EDIT_RESTRICTIONS, "Edit restrictions"),
            ),
            (
                _toggle(TOGGLE_REDISTRIBUTION, "redistribution", draft.allow_redistribution),
                _toggle(TOGGLE_MODIFICATION, "modification", draft.allow_modification),
                _toggle(TOGGLE_BACKUP, "backup", draft.allow_backup),
            ),
            (
                Button(SAVE_LICENSE, "Save", ButtonStyle.PRIMARY),
                Button(CANCEL_LICENSE, "Cancel", ButtonStyle.DANGER),
            ),
        ),
        ephemeral=True,
    )


def edit_name_form(current: str) -> FormView:
    return FormView(
        EDIT_NAME_FORM,
        "Edit license name",
        (
            TextInput(
                NAME_INPUT,
                "License name",
                value=current,
                placeholder="Enter a license name",
                min_length=1,
                max_length=NAME_MAX_LENGTH,
            ),
        ),
    )


def edit_restrictions_form(current: str | None) -> FormView:
    return FormView(
        EDIT_RESTRICTIONS_FORM,
        "Edit restrictions",
        (
            TextInput(
                RESTRICTIONS_INPUT,
                "Restrictions",
                value=current or "",
                placeholder="Extra restrictions (optional)",
                max_length=RESTRICTIONS_MAX_LENGTH,
                required=False,
                multiline=True,
            ),
        ),
    )


def announcement(terms: LicenseTerms, backup_allowed: bool, display_name: str) -> MessageView:
    return MessageView(
        embed=Embed(
            title=f"License: {terms.name}",
            description="The content of this thread is covered by the following license:",
            fields=_license_fields(terms, backup_allowed),
            footer=f"Published by: {display_name}",
            timestamp=datetime.now(tz=UTC),
        )
    )


def superseded(previous: MessageView, *, at: datetime) -> MessageView:
    """Relabel a previous announcement so readers know it no longer applies."""

    if previous.embed is None:
        return replace(previous, content=f"{SUPERSEDED_PREFIX}{previous.content}", rows=())
    embed = previous.embed
    title = embed.title if embed.title.startswith(SUPERSEDED_PREFIX) else SUPERSEDED_PREFIX + embed.title
    stamp = at.strftime("%Y-%m-%d %H:%M:%S")
    footer = f"{embed.footer} | superseded at {stamp}" if embed.footer else f"Superseded at {stamp}"
    return replace(
        previous,
        embed=replace(
            embed,
            title=title,
            description=f"**This license was replaced by a newer one.**\n\n{embed.description}",
            footer=footer,
        ),
        rows=(),
    )


def notice(text: str, *, ephemeral: bool = True) -> MessageView:
    """A plain text message with no controls (acknowledgements, terminal states)."""

    return MessageView(content=text, ephemeral=ephemeral)


DISABLED_NOTICE = (
    "Got it. If you change your mind, you can turn auto-publish on from your settings."
)
EXIT_NOTICE = DISABLED_NOTICE
PUBLISHED_NOTICE = "The license was published."
PUBLISH_CANCELLED_NOTICE = "Publishing cancelled."
FIRST_TIME_PUBLISHED_NOTICE = (
    "The license was created, set as your default, and published in this thread."
)
FIRST_TIME_SKIPPED_NOTICE = (
    "The license was created and set as your default. It will be offered "
    "automatically in your next threads."
)
EDITOR_SAVED_NOTICE = "License saved."
EDITOR_CANCELLED_NOTICE = "Editing cancelled."
EDITOR_TIMED_OUT_NOTICE = "The editor timed out. Start again from your next thread."
