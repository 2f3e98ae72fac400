"""Unit tests for the template catalog and license models."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from license_autopublisher.licenses.models import (
    BackupOverride,
    LicenseDraft,
    LicenseTerms,
    TemplateLicense,
)
from license_autopublisher.licenses.templates import TemplateCatalog, find_template


def _write(path: Path, items: list[dict[str, object]]) -> None:
    path.write_text(json.dumps(items), encoding="utf-8")


def test_catalog_loads_and_reloads(tmp_path: Path) -> None:
    path = tmp_path / "licenses.json"
    _write(path, [{"name": "A", "allow_backup": True}])
    catalog = TemplateCatalog(path)

    before = catalog.get_all()
    assert [t.name for t in before] == ["A"]
    assert catalog.get_by_name("A") is not None
    assert catalog.get_by_name("B") is None

    _write(path, [{"name": "B"}, {"name": "C", "allow_modification": True}])
    catalog.reload()

    assert [t.name for t in catalog.get_all()] == ["B", "C"]
    # Snapshots taken earlier are unaffected.
    assert [t.name for t in before] == ["A"]


def test_find_template_matches_exact_names() -> None:
    templates = [TemplateLicense(name="A"), TemplateLicense(name="B")]

    assert find_template(templates, "A") is templates[0]
    assert find_template(templates, "B") is templates[1]
    assert find_template(templates, "a") is None
    assert find_template([], "A") is None


def test_invalid_catalog_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "licenses.json"
    _write(path, [{"allow_backup": True}])

    with pytest.raises(ValidationError):
        TemplateCatalog(path)


def test_shipped_templates_file_is_valid() -> None:
    path = Path(__file__).resolve().parents[2] / "templates" / "licenses.json"
    catalog = TemplateCatalog(path)

    assert catalog.get_all()


@pytest.mark.parametrize(
    ("override", "template_default", "expected"),
    [
        (BackupOverride.INHERIT, True, True),
        (BackupOverride.INHERIT, False, False),
        (BackupOverride.ALLOW, False, True),
        (BackupOverride.DENY, True, False),
    ],
)
def test_backup_override_apply(
    override: BackupOverride, template_default: bool, expected: bool
) -> None:
    assert override.apply(template_default) is expected


def test_backup_override_cycle_is_total() -> None:
    assert BackupOverride.INHERIT.cycle() is BackupOverride.ALLOW
    assert BackupOverride.ALLOW.cycle() is BackupOverride.DENY
    assert BackupOverride.DENY.cycle() is BackupOverride.INHERIT
    assert BackupOverride.from_optional(None) is BackupOverride.INHERIT
    assert BackupOverride.DENY.to_optional() is False


def test_draft_edits_do_not_touch_the_source() -> None:
    terms = LicenseTerms(name="Base", allow_backup=True)
    draft = LicenseDraft.from_terms(terms)

    edited = draft.toggled("allow_redistribution").renamed("X").with_note("No AI training")

    assert edited.allow_redistribution is True
    assert edited.name == "X"
    assert edited.to_terms().restrictions_note == "No AI training"
    assert draft.name == "Base"
    assert terms.allow_redistribution is False
    with pytest.raises(ValueError):
        draft.toggled("name")
