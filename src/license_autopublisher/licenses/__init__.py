"""License records, user preferences and their persistence."""

from license_autopublisher.licenses.models import (
    BackupOverride,
    LicenseDraft,
    LicenseRecord,
    LicenseRef,
    LicenseTerms,
    PublishedAnnouncement,
    TemplateLicense,
    TemplateLicenseRef,
    UserOwnedLicense,
    UserPreference,
)
from license_autopublisher.licenses.store import (
    AnnouncementStore,
    LicenseDataStore,
    LicenseStore,
    PreferenceStore,
)
from license_autopublisher.licenses.templates import TemplateCatalog

__all__ = [
    "AnnouncementStore",
    "BackupOverride",
    "LicenseDataStore",
    "LicenseDraft",
    "LicenseRecord",
    "LicenseRef",
    "LicenseStore",
    "LicenseTerms",
    "PreferenceStore",
    "PublishedAnnouncement",
    "TemplateCatalog",
    "TemplateLicense",
    "TemplateLicenseRef",
    "UserOwnedLicense",
    "UserPreference",
]
