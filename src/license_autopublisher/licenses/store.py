"""JSON-file backed stores for preferences, licenses and published announcements.

Each store keeps one JSON list on disk and serialises its own read-modify-write
cycles behind a lock, so a single write (including the license-cap check and the
insert it guards) is atomic within the process.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel

from license_autopublisher.errors import DuplicateLicenseName, LicenseLimitExceeded

from .models import (
    BackupOverride,
    LicenseRecord,
    LicenseRef,
    LicenseTerms,
    PublishedAnnouncement,
    TemplateLicenseRef,
    UserOwnedLicense,
    UserPreference,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_LICENSES_PER_USER = 5


def _safe_load_json_list(path: Path) -> list[dict[str, object]]:
    if not path.exists():
        return []
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        logger.warning("State file is not valid JSON; treating as empty", extra={"path": str(path)})
        return []
    if not isinstance(raw, list):
        logger.warning(
            "State file has unexpected shape; treating as empty", extra={"path": str(path)}
        )
        return []
    return [item for item in raw if isinstance(item, dict)]


def _save_json_list(path: Path, items: Sequence[BaseModel]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = [m.model_dump(mode="json") for m in items]
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")


@dataclass
class PreferenceStore:
    path: Path

    def __post_init__(self) -> None:
        self._lock = threading.Lock()

    def _load_unlocked(self) -> list[UserPreference]:
        return [UserPreference.model_validate(item) for item in _safe_load_json_list(self.path)]

    def _mutate(
        self,
        user_id: int,
        update: Callable[[UserPreference], dict[str, object]] | None = None,
        **updates: object,
    ) -> UserPreference:
        """Apply updates to the user's row, creating the default row first if needed."""

        with self._lock:
            prefs = self._load_unlocked()
            for idx, pref in enumerate(prefs):
                if pref.user_id == user_id:
                    break
            else:
                idx, pref = len(prefs), UserPreference(user_id=user_id)
                prefs.append(pref)
            changes = dict(updates)
            if update is not None:
                changes.update(update(pref))
            merged = pref.model_copy(update=changes)
            prefs[idx] = merged
            _save_json_list(self.path, prefs)
            return merged

    def get(self, user_id: int) -> UserPreference | None:
        with self._lock:
            for pref in self._load_unlocked():
                if pref.user_id == user_id:
                    return pref
            return None

    def get_or_create(self, user_id: int) -> UserPreference:
        return self._mutate(user_id)

    def set_auto_publish(self, user_id: int, enabled: bool) -> UserPreference:
        return self._mutate(user_id, auto_publish_enabled=enabled)

    def toggle_auto_publish(self, user_id: int) -> UserPreference:
        return self._mutate(
            user_id, lambda pref: {"auto_publish_enabled": not pref.auto_publish_enabled}
        )

    def set_skip_confirmation(self, user_id: int, skip: bool) -> UserPreference:
        return self._mutate(user_id, skip_confirmation=skip)

    def set_default_license(
        self,
        user_id: int,
        ref: LicenseRef | None,
        backup_override: BackupOverride = BackupOverride.INHERIT,
    ) -> UserPreference:
        """Point the user's default at a license. The two variants are exclusive."""

        if isinstance(ref, UserOwnedLicense):
            return self._mutate(
                user_id,
                default_license_id=ref.license_id,
                default_template_name=None,
                template_backup_override=BackupOverride.INHERIT,
            )
        if isinstance(ref, TemplateLicenseRef):
            return self._mutate(
                user_id,
                default_license_id=None,
                default_template_name=ref.name,
                template_backup_override=backup_override,
            )
        return self._mutate(
            user_id,
            default_license_id=None,
            default_template_name=None,
            template_backup_override=BackupOverride.INHERIT,
        )

    def list_auto_publish_users(self) -> list[int]:
        with self._lock:
            return [p.user_id for p in self._load_unlocked() if p.auto_publish_enabled]


@dataclass
class LicenseStore:
    path: Path
    max_per_owner: int = DEFAULT_MAX_LICENSES_PER_USER

    def __post_init__(self) -> None:
        self._lock = threading.Lock()

    def _load_unlocked(self) -> list[LicenseRecord]:
        return [LicenseRecord.model_validate(item) for item in _safe_load_json_list(self.path)]

    def create(self, owner_id: int, terms: LicenseTerms) -> LicenseRecord:
        """Insert a license, rejecting it past the per-owner cap or on a name clash."""

        with self._lock:
            records = self._load_unlocked()
            owned = [r for r in records if r.owner_id == owner_id]
            if len(owned) >= self.max_per_owner:
                raise LicenseLimitExceeded(self.max_per_owner)
            name = terms.name.strip()
            if any(r.name == name for r in owned):
                raise DuplicateLicenseName(name)

            next_id = max((r.id for r in records), default=0) + 1
            record = LicenseRecord(
                id=next_id,
                owner_id=owner_id,
                name=name,
                allow_redistribution=terms.allow_redistribution,
                allow_modification=terms.allow_modification,
                allow_backup=terms.allow_backup,
                restrictions_note=terms.restrictions_note,
                usage_count=0,
                created_at=datetime.now(tz=UTC),
            )
            records.append(record)
            _save_json_list(self.path, records)
            logger.info(
                "License created",
                extra={"license_id": record.id, "owner_id": owner_id, "owned": len(owned) + 1},
            )
            return record

    def get(self, license_id: int, owner_id: int) -> LicenseRecord | None:
        """Return the license only if `owner_id` owns it."""

        with self._lock:
            for record in self._load_unlocked():
                if record.id == license_id and record.owner_id == owner_id:
                    return record
            return None

    def list_by_owner(self, owner_id: int) -> list[LicenseRecord]:
        with self._lock:
            owned = [r for r in self._load_unlocked() if r.owner_id == owner_id]
        return sorted(owned, key=lambda r: (r.created_at, r.id), reverse=True)

    def count_by_owner(self, owner_id: int) -> int:
        with self._lock:
            return sum(1 for r in self._load_unlocked() if r.owner_id == owner_id)

    def name_exists(self, owner_id: int, name: str, *, exclude_id: int | None = None) -> bool:
        with self._lock:
            return any(
                r.owner_id == owner_id and r.name == name and r.id != exclude_id
                for r in self._load_unlocked()
            )

    def increment_usage(self, license_id: int, owner_id: int) -> None:
        with self._lock:
            records = self._load_unlocked()
            for idx, record in enumerate(records):
                if record.id == license_id and record.owner_id == owner_id:
                    records[idx] = record.model_copy(update={"usage_count": record.usage_count + 1})
                    _save_json_list(self.path, records)
                    return


@dataclass
class AnnouncementStore:
    path: Path

    def __post_init__(self) -> None:
        self._lock = threading.Lock()

    def _load_unlocked(self) -> list[PublishedAnnouncement]:
        return [
            PublishedAnnouncement.model_validate(item) for item in _safe_load_json_list(self.path)
        ]

    def get_by_thread(self, thread_id: int) -> PublishedAnnouncement | None:
        with self._lock:
            for item in self._load_unlocked():
                if item.thread_id == thread_id:
                    return item
            return None

    def backup_changed(self, thread_id: int, backup_allowed: bool) -> bool:
        """Whether publishing `backup_allowed` changes the thread's recorded value.

        With no prior record, only a newly granted permission counts as a change.
        """

        existing = self.get_by_thread(thread_id)
        if existing is None:
            return backup_allowed
        return existing.backup_allowed != backup_allowed

    def upsert(
        self, *, thread_id: int, message_id: int, author_id: int, backup_allowed: bool
    ) -> PublishedAnnouncement:
        with self._lock:
            items = self._load_unlocked()
            record = PublishedAnnouncement(
                thread_id=thread_id,
                message_id=message_id,
                author_id=author_id,
                backup_allowed=backup_allowed,
                updated_at=datetime.now(tz=UTC),
            )
            for idx, existing in enumerate(items):
                if existing.thread_id == thread_id:
                    # The original author stays on record.
                    items[idx] = record.model_copy(update={"author_id": existing.author_id})
                    _save_json_list(self.path, items)
                    return items[idx]
            items.append(record)
            _save_json_list(self.path, items)
            return record


@dataclass(frozen=True, slots=True)
class LicenseDataStore:
    """The three stores the workflow reads and writes, rooted in one directory."""

    preferences: PreferenceStore
    licenses: LicenseStore
    announcements: AnnouncementStore

    @classmethod
    def open(
        cls, root: Path, *, max_licenses_per_user: int = DEFAULT_MAX_LICENSES_PER_USER
    ) -> LicenseDataStore:
        return cls(
            preferences=PreferenceStore(root / "preferences.json"),
            licenses=LicenseStore(root / "licenses.json", max_per_owner=max_licenses_per_user),
            announcements=AnnouncementStore(root / "announcements.json"),
        )
