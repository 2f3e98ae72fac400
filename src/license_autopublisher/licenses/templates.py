"""Read-only catalog of template licenses loaded from a JSON file."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from pathlib import Path

from pydantic import TypeAdapter

from .models import TemplateLicense

logger = logging.getLogger(__name__)

_TEMPLATE_LIST = TypeAdapter(list[TemplateLicense])


def find_template(templates: Iterable[TemplateLicense], name: str) -> TemplateLicense | None:
    for template in templates:
        if template.name == name:
            return template
    return None


class TemplateCatalog:
    """Holds the template licenses and swaps them wholesale on reload.

    Readers always see either the old or the new list, never a mix.
    """

    def __init__(self, path: Path, templates: list[TemplateLicense] | None = None) -> None:
        self._path = path
        self._templates: tuple[TemplateLicense, ...] = (
            tuple(templates) if templates is not None else self._read()
        )

    @classmethod
    def from_templates(cls, templates: list[TemplateLicense]) -> TemplateCatalog:
        return cls(Path("<memory>"), templates)

    def _read(self) -> tuple[TemplateLicense, ...]:
        raw = json.loads(self._path.read_text(encoding="utf-8"))
        templates = _TEMPLATE_LIST.validate_python(raw)
        logger.info(
            "Template licenses loaded", extra={"path": str(self._path), "count": len(templates)}
        )
        return tuple(templates)

    def get_all(self) -> list[TemplateLicense]:
        return list(self._templates)

    def get_by_name(self, name: str) -> TemplateLicense | None:
        return find_template(self._templates, name)

    def reload(self) -> None:
        self._templates = self._read()
