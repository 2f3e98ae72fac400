"""License, preference and announcement records.

Persisted records are pydantic models (they round-trip through the JSON store);
transient values (references, drafts) are plain dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


class LicenseTerms(BaseModel):
    """The publishable part of a license."""

    name: str
    allow_redistribution: bool = False
    allow_modification: bool = False
    allow_backup: bool = False
    restrictions_note: str | None = None


class TemplateLicense(LicenseTerms):
    """A read-only, system-provided license definition."""


class LicenseRecord(LicenseTerms):
    """A license owned by exactly one user."""

    id: int
    owner_id: int
    usage_count: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=_utc_now)


@dataclass(frozen=True, slots=True)
class UserOwnedLicense:
    license_id: int


@dataclass(frozen=True, slots=True)
class TemplateLicenseRef:
    name: str


LicenseRef = UserOwnedLicense | TemplateLicenseRef


class BackupOverride(str, Enum):
    """Per-user override of a template's backup permission."""

    INHERIT = "inherit"
    ALLOW = "allow"
    DENY = "deny"

    def apply(self, template_default: bool) -> bool:
        if self is BackupOverride.ALLOW:
            return True
        if self is BackupOverride.DENY:
            return False
        return template_default

    def cycle(self) -> BackupOverride:
        order = (BackupOverride.INHERIT, BackupOverride.ALLOW, BackupOverride.DENY)
        return order[(order.index(self) + 1) % len(order)]

    @classmethod
    def from_optional(cls, value: bool | None) -> BackupOverride:
        if value is None:
            return cls.INHERIT
        return cls.ALLOW if value else cls.DENY

    def to_optional(self) -> bool | None:
        if self is BackupOverride.INHERIT:
            return None
        return self is BackupOverride.ALLOW


class UserPreference(BaseModel):
    """One row per end user.

    At most one of `default_license_id` / `default_template_name` is set; the store
    enforces that when writing.
    """

    user_id: int
    auto_publish_enabled: bool = False
    skip_confirmation: bool = False
    default_license_id: int | None = None
    default_template_name: str | None = None
    template_backup_override: BackupOverride = BackupOverride.INHERIT

    @property
    def default_license_ref(self) -> LicenseRef | None:
        if self.default_license_id is not None:
            return UserOwnedLicense(self.default_license_id)
        if self.default_template_name is not None:
            return TemplateLicenseRef(self.default_template_name)
        return None


class PublishedAnnouncement(BaseModel):
    """The license announcement currently standing in a thread."""

    thread_id: int
    message_id: int
    author_id: int
    backup_allowed: bool
    updated_at: datetime = Field(default_factory=_utc_now)


@dataclass(frozen=True, slots=True)
class LicenseDraft:
    """In-memory editable copy of a license. Never persisted until saved."""

    name: str
    allow_redistribution: bool = False
    allow_modification: bool = False
    allow_backup: bool = False
    restrictions_note: str | None = None

    @classmethod
    def from_terms(cls, terms: LicenseTerms) -> LicenseDraft:
        return cls(
            name=terms.name,
            allow_redistribution=terms.allow_redistribution,
            allow_modification=terms.allow_modification,
            allow_backup=terms.allow_backup,
            restrictions_note=terms.restrictions_note,
        )

    def to_terms(self) -> LicenseTerms:
        return LicenseTerms(
            name=self.name,
            allow_redistribution=self.allow_redistribution,
            allow_modification=self.allow_modification,
            allow_backup=self.allow_backup,
            restrictions_note=self.restrictions_note,
        )

    def toggled(self, field: str) -> LicenseDraft:
        if field not in {"allow_redistribution", "allow_modification", "allow_backup"}:
            raise ValueError(f"Not a toggleable field: {field}")
        return replace(self, **{field: not getattr(self, field)})

    def renamed(self, name: str) -> LicenseDraft:
        return replace(self, name=name)

    def with_note(self, note: str | None) -> LicenseDraft:
        return replace(self, restrictions_note=note)
