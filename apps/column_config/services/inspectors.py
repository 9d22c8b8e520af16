"""
apps.column_config.services.inspectors
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Static registry of field-type inspectors.

An inspector describes the editor fragment for the ``fieldOptions`` of one
field type: which keys it edits, their types and their defaults.  The
registry is a plain mapping built at import time.  Looking up a field type
that has no inspector returns :class:`NoOpInspector`, which describes
nothing; a lookup never raises.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .column_model import Column, FieldType


@dataclass(frozen=True)
class FieldOptionSpec:
    """One editable key inside ``fieldOptions``."""

    key: str
    type: str
    default: Any
    label: str = ""

    @property
    def path(self) -> str:
        return f"fieldOptions.{self.key}"


@dataclass(frozen=True)
class Inspector:
    """Describes the ``fieldOptions`` editor for one field type."""

    field_type: FieldType | None
    options: tuple[FieldOptionSpec, ...] = field(default_factory=tuple)

    def default_field_options(self) -> dict[str, Any]:
        return {spec.key: spec.default for spec in self.options}

    def describe(self, column: Column) -> dict[str, Any]:
        """Return the editor fragment for *column*, with current values filled in."""
        return {
            "fieldType": column.field_type.value,
            "options": [
                {
                    "path": spec.path,
                    "type": spec.type,
                    "label": spec.label or spec.key,
                    "default": spec.default,
                    "value": column.field_options.get(spec.key, spec.default),
                }
                for spec in self.options
            ],
        }


class NoOpInspector(Inspector):
    """Inspector for field types without field-specific options."""

    def __init__(self) -> None:
        super().__init__(field_type=None, options=())


class InspectorRegistry:
    """Lookup of :class:`Inspector` by :class:`FieldType`."""

    def __init__(self, inspectors: dict[FieldType, Inspector], default: Inspector) -> None:
        self._inspectors = dict(inspectors)
        self._default = default

    def get(self, field_type: FieldType | str | None) -> Inspector:
        try:
            return self._inspectors.get(FieldType(field_type), self._default)
        except ValueError:
            return self._default


def _inspector(field_type: FieldType, *options: FieldOptionSpec) -> Inspector:
    return Inspector(field_type=field_type, options=options)


# Illustrative registrations.  Field-type plugins own their option sets;
# every other type falls back to the no-op inspector.
inspector_registry = InspectorRegistry(
    {
        FieldType.TEXTAREA: _inspector(
            FieldType.TEXTAREA,
            FieldOptionSpec("rows", "integer", 5, "Rows"),
        ),
        FieldType.SELECT: _inspector(
            FieldType.SELECT,
            FieldOptionSpec("options", "string", "", "Comma separated options"),
        ),
    },
    default=NoOpInspector(),
)
