"""
apps.column_config.services.change_set_validator
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Validates a proposed change-set against the stored columns of one table
before any of it is persisted.

This module is **pure Python** — it has zero Django view, serializer, or ORM
imports and can be exercised in plain ``pytest`` tests without any Django
setup.

Public API
----------
ChangeSetValidationRequest   – Input dataclass
ChangeSetValidationResult    – Output dataclass
ChangeSetValidationService   – Single-entry-point validator
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence

from .column_model import (
    BASE_OPTION_KEYS,
    BOOLEAN_OPTION_KEYS,
    NULL_VALUE_CHOICES,
    SEQUENCE_OPTION_KEYS,
    STRING_OPTION_KEYS,
    Column,
    FieldType,
    VisibilityFlag,
)
from .patch_builder import PatchBuilder


# ---------------------------------------------------------------------------
# Type aliases
# ---------------------------------------------------------------------------

#: A single validation error dict with "column", "field", "code" and
#: "message" keys.
ErrorDict = dict[str, str]


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------

@dataclass
class ChangeSetValidationRequest:
    """
    Encapsulates all inputs required to validate a change-set.

    Attributes:
        columns: The table's currently stored columns, in order.
        changes: The proposed change-set, shaped as
            ``{column_name: partial_patch}``.
    """

    columns: Sequence[Column]
    changes: dict


@dataclass
class ChangeSetValidationResult:
    """
    Result of a validation run performed by
    :class:`ChangeSetValidationService`.

    Attributes:
        valid: ``True`` iff no errors were found.
        errors: List of error dicts, each with keys:

            - ``"column"``  – name of the column whose patch was rejected
            - ``"field"``   – dot-separated option path, e.g.
              ``"baseOptions.nullable"`` (empty for whole-patch errors)
            - ``"code"``    – machine-readable error code (see below)
            - ``"message"`` – human-readable description

            Error codes used by this service:

            ========================  ===========================================
            Code                      Meaning
            ========================  ===========================================
            ``unknown_column``        Patch names a column the table lacks.
            ``invalid_patch``         Patch (or a namespace in it) is not a dict.
            ``immutable_field``       Patch touches ``name`` or ``dataSourceInfo``.
            ``unknown_option``        Patch names an option that does not exist.
            ``type_mismatch``         Option value has the wrong type.
            ``invalid_visibility``    ``visibility`` holds an unknown view.
            ``invalid_null_values``   ``nullValues`` holds an unsupported sentinel.
            ``constraint_violation``  Merged column breaks required/nullable rules.
            ``nullable_unsupported``  ``nullable`` set on a non-nullable source.
            ========================  ===========================================
    """

    valid: bool
    errors: list[ErrorDict] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Internal constants
# ---------------------------------------------------------------------------

_VALID_VIEWS: frozenset[str] = frozenset(flag.value for flag in VisibilityFlag)
_VALID_FIELD_TYPES: frozenset[str] = frozenset(ft.value for ft in FieldType)
_IMMUTABLE_KEYS: frozenset[str] = frozenset({"name", "dataSourceInfo"})
_PATCH_KEYS: frozenset[str] = frozenset({"fieldType", "label", "baseOptions", "fieldOptions"})


def _error(column: str, path: str, code: str, message: str) -> ErrorDict:
    return {"column": column, "field": path, "code": code, "message": message}


# ---------------------------------------------------------------------------
# Validator
# ---------------------------------------------------------------------------

class ChangeSetValidationService:
    """
    Validates that a change-set can be applied to a table's columns.

    All rules are evaluated and **all errors are accumulated** before
    returning — the validator never short-circuits on the first failure.
    Consistency rules (6-8) are only checked for patches that passed the
    shape rules, since they need the merged column.

    Usage::

        request = ChangeSetValidationRequest(
            columns=stored_columns,
            changes={"email": {"baseOptions": {"nullable": True}}},
        )
        result = ChangeSetValidationService.validate(request)
        if not result.valid:
            for err in result.errors:
                print(err["column"], err["code"], err["message"])
    """

    @staticmethod
    def validate(request: ChangeSetValidationRequest) -> ChangeSetValidationResult:
        """
        Validate *request.changes* against *request.columns*.

        Enforces, in order:

        1. Unknown column names.
        2. Patch shape (dicts all the way down to option values).
        3. Immutable and unknown keys.
        4. Option value types.
        5. Visibility flags drawn from ``index``/``show``/``edit``/``new``;
           ``nullValues`` drawn from ``""``/``"null"``/``"0"``.
        6. ``required`` and ``nullable`` not both true after the merge.
        7. ``nullValues`` non-empty when nullable after the merge.
        8. ``nullable`` only on columns whose source accepts NULL.

        Args:
            request: A :class:`ChangeSetValidationRequest`.

        Returns:
            A :class:`ChangeSetValidationResult` where ``valid`` is
            ``True`` iff no errors were found.
        """
        errors: list[ErrorDict] = []
        by_name = {column.name: column for column in request.columns}

        if not isinstance(request.changes, dict):
            errors.append(_error("", "", "invalid_patch", "Changes must be a dict keyed by column name."))
            return ChangeSetValidationResult(valid=False, errors=errors)

        for name, patch in request.changes.items():
            # ── Rule 1: unknown columns ───────────────────────────────────
            column = by_name.get(name)
            if column is None:
                errors.append(_error(
                    name, "", "unknown_column",
                    f'Column "{name}" does not exist in this table.',
                ))
                continue

            # ── Rules 2-5: shape, keys and types ──────────────────────────
            shape_errors = ChangeSetValidationService._validate_patch_shape(name, patch)
            errors.extend(shape_errors)
            if shape_errors:
                continue

            # ── Rules 6-8: consistency of the merged column ───────────────
            merged = PatchBuilder.apply_change_set([column], {name: patch})[0]
            ChangeSetValidationService._validate_merged(merged, errors)

        return ChangeSetValidationResult(valid=len(errors) == 0, errors=errors)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_patch_shape(name: str, patch: Any) -> list[ErrorDict]:
        """Run rules 2-5 for one column patch and return the errors found."""
        errors: list[ErrorDict] = []
        if not isinstance(patch, dict):
            errors.append(_error(name, "", "invalid_patch", f'Patch for "{name}" must be a dict.'))
            return errors

        for key, value in patch.items():
            if key in _IMMUTABLE_KEYS:
                errors.append(_error(
                    name, key, "immutable_field",
                    f'"{key}" is read-only and cannot be changed.',
                ))
            elif key not in _PATCH_KEYS:
                errors.append(_error(name, key, "unknown_option", f'"{key}" is not a column option.'))
            elif key == "fieldType":
                if value not in _VALID_FIELD_TYPES:
                    errors.append(_error(
                        name, key, "type_mismatch",
                        f'"{value}" is not a known field type.',
                    ))
            elif key == "label":
                if value is not None and not isinstance(value, str):
                    errors.append(_error(name, key, "type_mismatch", '"label" expects a string or null.'))
            elif key == "fieldOptions":
                if not isinstance(value, dict):
                    errors.append(_error(name, key, "invalid_patch", '"fieldOptions" must be a dict.'))
            elif not isinstance(value, dict):
                errors.append(_error(name, key, "invalid_patch", '"baseOptions" must be a dict.'))
            else:
                for option, option_value in value.items():
                    ChangeSetValidationService._validate_base_option(
                        name, option, option_value, errors
                    )
        return errors

    @staticmethod
    def _validate_base_option(name: str, option: str, value: Any, errors: list[ErrorDict]) -> None:
        path = f"baseOptions.{option}"
        if option not in BASE_OPTION_KEYS:
            errors.append(_error(name, path, "unknown_option", f'"{path}" is not a column option.'))
            return

        if option in BOOLEAN_OPTION_KEYS and not isinstance(value, bool):
            errors.append(_error(
                name, path, "type_mismatch",
                f'"{path}" expects type "boolean"; got {type(value).__name__}.',
            ))
        elif option in STRING_OPTION_KEYS and not isinstance(value, str):
            errors.append(_error(
                name, path, "type_mismatch",
                f'"{path}" expects type "string"; got {type(value).__name__}.',
            ))
        elif option in SEQUENCE_OPTION_KEYS:
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                errors.append(_error(name, path, "type_mismatch", f'"{path}" expects a list of strings.'))
            elif option == "visibility":
                unknown = sorted(set(value) - _VALID_VIEWS)
                if unknown:
                    errors.append(_error(
                        name, path, "invalid_visibility",
                        f'"{path}" contains unknown views {unknown}. '
                        f"Allowed views: {sorted(_VALID_VIEWS)}.",
                    ))
            else:
                unknown = [v for v in value if v not in NULL_VALUE_CHOICES]
                if unknown:
                    errors.append(_error(
                        name, path, "invalid_null_values",
                        f'"{path}" contains unsupported null values {unknown}. '
                        f"Allowed values: {list(NULL_VALUE_CHOICES)}.",
                    ))

    @staticmethod
    def _validate_merged(column: Column, errors: list[ErrorDict]) -> None:
        options = column.base_options
        if options.required and options.nullable:
            errors.append(_error(
                column.name, "baseOptions.required", "constraint_violation",
                f'"{column.name}" cannot be both required and nullable.',
            ))
        if options.nullable and not options.null_values:
            errors.append(_error(
                column.name, "baseOptions.nullValues", "constraint_violation",
                f'"{column.name}" is nullable but declares no null values.',
            ))
        if options.nullable and not column.data_source_info.nullable:
            errors.append(_error(
                column.name, "baseOptions.nullable", "nullable_unsupported",
                f'"{column.name}" has to be nullable in the data source '
                "in order to use this option.",
            ))
