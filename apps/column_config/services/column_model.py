"""
apps.column_config.services.column_model
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Immutable data model for the metadata describing one table column.

A :class:`Column` is never mutated in place.  Every edit goes through
:func:`with_option`, which returns a *new* Column with exactly one option
changed and every other field structurally shared with the original.

Wire format
-----------
Columns travel to and from the editor (and are persisted) as plain dicts
using camelCase keys::

    {
        "name": "email",
        "fieldType": "Text",
        "label": "Email",
        "baseOptions": {
            "label": "", "placeholder": "", "help": "", "defaultValue": "",
            "required": False, "nullable": False, "nullValues": [],
            "disconnected": False,
            "visibility": ["index", "show", "edit", "new"],
        },
        "fieldOptions": {},
        "dataSourceInfo": {"nullable": True},
    }

Option paths accepted by :func:`with_option` use the same keys, e.g.
``"baseOptions.nullable"``, ``"fieldOptions.rows"`` or ``"fieldType"``.

This module is **pure Python** — no Django imports.
"""
from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterable, Mapping


class InvalidOptionValueError(ValueError):
    """Raised when a value cannot be stored in the option it targets."""

    def __init__(self, path: str, value: Any) -> None:
        self.path = path
        self.value = value
        super().__init__(f"Option \"{path}\" cannot take value {value!r}.")


class InvalidPathError(Exception):
    """
    Raised when an option path does not resolve to a settable field.

    Attributes:
        path: The offending dotted path.
    """

    def __init__(self, path: str, reason: str = "does not resolve to a known field") -> None:
        self.path = path
        super().__init__(f'Option path "{path}" {reason}.')


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class FieldType(str, Enum):
    """Field types selecting the inspector and the shape of ``fieldOptions``."""

    ID = "Id"
    TEXT = "Text"
    TEXTAREA = "Textarea"
    NUMBER = "Number"
    BOOLEAN = "Boolean"
    DATETIME = "DateTime"
    SELECT = "Select"
    ASSOCIATION = "Association"
    JSON = "Json"
    GRAVATAR = "Gravatar"
    PROGRESS_BAR = "ProgressBar"
    LINK_TO = "LinkTo"


class VisibilityFlag(str, Enum):
    """Views a column may appear in."""

    INDEX = "index"
    SHOW = "show"
    EDIT = "edit"
    NEW = "new"


#: Every view, in display order.  New columns are visible everywhere.
ALL_VIEWS: tuple[str, ...] = tuple(flag.value for flag in VisibilityFlag)

#: Sentinel values a nullable column may treat as empty.
NULL_VALUE_CHOICES: tuple[str, ...] = ("", "null", "0")

#: Field types whose create-view default value cannot be configured.
_NO_DEFAULT_VALUE_TYPES: frozenset[FieldType] = frozenset({FieldType.ID, FieldType.DATETIME})


def ordered_set(values: Iterable[Any]) -> tuple:
    """Return *values* as a tuple, dropping repeats but keeping first-seen order."""
    return tuple(dict.fromkeys(values))


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DataSourceInfo:
    """
    Read-only capability flags reported by the physical data source.

    Attributes:
        nullable: Whether the underlying storage accepts NULL.
        extra: Any other flag the source reported, kept verbatim.
    """

    nullable: bool = True
    extra: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "DataSourceInfo":
        data = dict(data or {})
        nullable = data.pop("nullable", True)
        return cls(nullable=bool(nullable), extra=data)

    def to_dict(self) -> dict[str, Any]:
        return {**self.extra, "nullable": self.nullable}


@dataclass(frozen=True)
class BaseOptions:
    """Options shared by every field type."""

    label: str = ""
    placeholder: str = ""
    help: str = ""
    default_value: str = ""
    required: bool = False
    nullable: bool = False
    null_values: tuple[str, ...] = ()
    disconnected: bool = False
    visibility: tuple[str, ...] = ALL_VIEWS

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "BaseOptions":
        data = data or {}
        kwargs: dict[str, Any] = {}
        for wire_key, attr in BASE_OPTION_KEYS.items():
            if wire_key in data:
                kwargs[attr] = _normalise(wire_key, data[wire_key])
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for wire_key, attr in BASE_OPTION_KEYS.items():
            value = getattr(self, attr)
            result[wire_key] = list(value) if wire_key in SEQUENCE_OPTION_KEYS else value
        return result


#: Wire key → attribute name for every ``baseOptions`` entry.
BASE_OPTION_KEYS: dict[str, str] = {
    "label": "label",
    "placeholder": "placeholder",
    "help": "help",
    "defaultValue": "default_value",
    "required": "required",
    "nullable": "nullable",
    "nullValues": "null_values",
    "disconnected": "disconnected",
    "visibility": "visibility",
}

#: ``baseOptions`` keys whose value is a complete logical set, never
#: patched element-wise.
SEQUENCE_OPTION_KEYS: frozenset[str] = frozenset({"nullValues", "visibility"})

#: ``baseOptions`` keys holding a strict ``bool``.
BOOLEAN_OPTION_KEYS: frozenset[str] = frozenset({"required", "nullable", "disconnected"})

#: ``baseOptions`` keys holding a ``str``.
STRING_OPTION_KEYS: frozenset[str] = frozenset({"label", "placeholder", "help", "defaultValue"})


@dataclass(frozen=True)
class Column:
    """
    One physical field of a table, described by its editable metadata.

    ``name`` is the identity of the column: it is used to match baseline and
    working entries and to key the change-set.  It is never rewritten.
    """

    name: str
    field_type: FieldType = FieldType.TEXT
    label: str | None = None
    base_options: BaseOptions = field(default_factory=BaseOptions)
    field_options: Mapping[str, Any] = field(default_factory=dict)
    data_source_info: DataSourceInfo = field(default_factory=DataSourceInfo)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Column":
        """Build a Column from its wire representation."""
        return cls(
            name=data["name"],
            field_type=FieldType(data.get("fieldType", FieldType.TEXT.value)),
            label=data.get("label"),
            base_options=BaseOptions.from_dict(data.get("baseOptions")),
            field_options=dict(data.get("fieldOptions") or {}),
            data_source_info=DataSourceInfo.from_dict(data.get("dataSourceInfo")),
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the wire representation (a fresh, independent dict)."""
        return {
            "name": self.name,
            "fieldType": self.field_type.value,
            "label": self.label,
            "baseOptions": self.base_options.to_dict(),
            "fieldOptions": copy.deepcopy(dict(self.field_options)),
            "dataSourceInfo": self.data_source_info.to_dict(),
        }


# ---------------------------------------------------------------------------
# Pure transforms
# ---------------------------------------------------------------------------

def with_option(column: Column, path: str, value: Any) -> Column:
    """
    Return a copy of *column* with the option at *path* set to *value*.

    *path* is either a bare top-level wire key or a two-segment
    ``"<namespace>.<key>"`` path where namespace is ``baseOptions`` or
    ``fieldOptions``.  ``fieldOptions`` keys are free-form.

    Bare keys: ``"fieldType"``, ``"label"`` (a string or ``None``) and
    ``"fieldOptions"``, which replaces the whole bag with the given mapping.
    ``"baseOptions"`` cannot be replaced whole; set its keys one by one.

    Raises:
        InvalidPathError: If the path is malformed, names an unknown field,
            or targets a read-only field (``name``, ``dataSourceInfo``).
        InvalidOptionValueError: If *value* has the wrong type for the
            option, e.g. ``1`` for ``baseOptions.required``.
    """
    if not isinstance(path, str) or not path:
        raise InvalidPathError(str(path), "is empty")

    segments = path.split(".")
    if len(segments) == 1:
        return _with_top_level(column, path, value)

    if len(segments) != 2 or not all(segments):
        raise InvalidPathError(path)

    namespace, key = segments
    if namespace == "baseOptions":
        attr = BASE_OPTION_KEYS.get(key)
        if attr is None:
            raise InvalidPathError(path)
        options = replace(column.base_options, **{attr: _normalise(key, value)})
        return replace(column, base_options=options)
    if namespace == "fieldOptions":
        return replace(column, field_options={**column.field_options, key: value})
    if namespace == "dataSourceInfo":
        raise InvalidPathError(path, "is read-only")
    raise InvalidPathError(path)


def _with_top_level(column: Column, key: str, value: Any) -> Column:
    if key == "fieldType":
        try:
            return replace(column, field_type=FieldType(value))
        except ValueError as exc:
            raise InvalidOptionValueError(key, value) from exc
    if key == "label":
        if value is not None and not isinstance(value, str):
            raise InvalidOptionValueError(key, value)
        return replace(column, label=value)
    if key == "fieldOptions":
        if not isinstance(value, Mapping):
            raise InvalidOptionValueError(key, value)
        return replace(column, field_options=copy.deepcopy(dict(value)))
    if key in ("name", "dataSourceInfo"):
        raise InvalidPathError(key, "is read-only")
    raise InvalidPathError(key)


def display_label(column: Column) -> str:
    """Label shown for *column*: the override, then the source label, then the name."""
    return column.base_options.label or column.label or column.name


def option_available(column: Column, path: str) -> bool:
    """
    Return whether the option at *path* can be meaningfully edited for
    *column*.  Callers use it to disable controls; it never raises.
    """
    if path == "baseOptions.nullable":
        return column.data_source_info.nullable
    if path == "baseOptions.defaultValue":
        return column.field_type not in _NO_DEFAULT_VALUE_TYPES
    if path == "baseOptions.visibility":
        return not column.base_options.disconnected
    return True


def unavailable_options(column: Column) -> list[str]:
    """List the ``baseOptions`` paths that :func:`option_available` rejects."""
    return [
        f"baseOptions.{key}"
        for key in BASE_OPTION_KEYS
        if not option_available(column, f"baseOptions.{key}")
    ]


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------

def _normalise(wire_key: str, value: Any) -> Any:
    path = f"baseOptions.{wire_key}"
    if wire_key in SEQUENCE_OPTION_KEYS:
        if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
            raise InvalidOptionValueError(path, value)
        return ordered_set(value)
    # 1 and "true" are rejected too: the required/nullable rules fire on True only.
    if wire_key in BOOLEAN_OPTION_KEYS and not isinstance(value, bool):
        raise InvalidOptionValueError(path, value)
    if wire_key in STRING_OPTION_KEYS and not isinstance(value, str):
        raise InvalidOptionValueError(path, value)
    return value

