"""
apps.column_config.services.patch_builder
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Turns a position-keyed diff into the name-keyed change-set sent to the
persistence layer, and merges such a change-set back onto stored columns.

Change-set shape::

    {
        "email": {
            "baseOptions": {
                "nullable": True,
                "nullValues": [""],
                "visibility": ["index", "show", "edit", "new"],
            },
        },
    }

Rules applied per changed column:

1. ``baseOptions.visibility`` is always present and always the full current
   list, whether or not it changed.
2. ``fieldOptions`` is sent whole whenever any of its keys changed.
3. Columns are addressed by ``name``, never by position.

This module is **pure Python** — no Django imports, no I/O.

Public API
----------
PatchBuilder.build_change_set(diff_result, working) -> dict[str, dict]
PatchBuilder.is_dirty(baseline, working) -> bool
PatchBuilder.apply_change_set(columns, change_set) -> list[Column]
"""
from __future__ import annotations

import copy
from dataclasses import replace
from typing import Any, Mapping, Sequence

from .column_model import Column, with_option
from .diff_engine import DiffEngine

#: Name of a column → partial patch of its wire dict.
ChangeSet = dict[str, dict[str, Any]]


class PatchBuilder:
    """Stateless builder for change-sets."""

    @staticmethod
    def build_change_set(
        diff_result: Mapping[int, Mapping[str, Any]],
        working: Sequence[Column],
    ) -> ChangeSet:
        """
        Build the minimal change-set for *diff_result*.

        Args:
            diff_result: Output of :meth:`DiffEngine.diff
                <apps.column_config.services.diff_engine.DiffEngine.diff>`.
            working: The working sequence the diff was computed against.
                Positions missing from it are dropped.

        Returns:
            A new dict keyed by column name.  Computing it twice from the same
            inputs gives equal results.
        """
        change_set: ChangeSet = {}
        for index, delta in sorted(diff_result.items()):
            if not 0 <= index < len(working):
                continue
            column = working[index]

            patch = copy.deepcopy(dict(delta))
            patch["baseOptions"] = {
                **patch.get("baseOptions", {}),
                "visibility": list(column.base_options.visibility),
            }
            if "fieldOptions" in delta:
                patch["fieldOptions"] = copy.deepcopy(dict(column.field_options))

            change_set[column.name] = patch
        return change_set

    @staticmethod
    def is_dirty(baseline: Sequence[Column], working: Sequence[Column]) -> bool:
        """``True`` iff the change-set between *baseline* and *working* is non-empty."""
        diff_result = DiffEngine.diff(baseline, working)
        return len(PatchBuilder.build_change_set(diff_result, working)) > 0

    @staticmethod
    def apply_change_set(columns: Sequence[Column], change_set: Mapping[str, Any]) -> list[Column]:
        """
        Merge *change_set* onto *columns* and return the resulting list.

        ``baseOptions`` entries are set key by key; ``fieldOptions`` replaces
        the stored bag wholesale; top-level keys are set directly.  Columns
        not named in the change-set are returned unchanged, and names that
        match no column are ignored.  Constraint rules are **not** run: a
        merge that breaks an invariant is the validator's concern.

        Raises:
            InvalidPathError: If a patch names a key that cannot be set.
            InvalidOptionValueError: If a sequence option is given a
                non-sequence value.
        """
        merged: list[Column] = []
        for column in columns:
            patch = change_set.get(column.name)
            if patch:
                column = PatchBuilder._apply_patch(column, patch)
            merged.append(column)
        return merged

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _apply_patch(column: Column, patch: Mapping[str, Any]) -> Column:
        for key, value in patch.items():
            if key == "baseOptions":
                for option, option_value in value.items():
                    column = with_option(column, f"baseOptions.{option}", copy.deepcopy(option_value))
            elif key == "fieldOptions":
                column = replace(column, field_options=copy.deepcopy(dict(value)))
            else:
                column = with_option(column, key, value)
        return column
