"""
apps.column_config.services.diff_engine
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Purpose-built structural differ for index-aligned column sequences.

For each position the baseline and working columns are compared through
their wire dicts.  Nested mappings (``baseOptions``, ``fieldOptions`` and any
mapping inside ``fieldOptions``) are recursed into; every other value is a
leaf.  Lists and tuples are leaves too: a changed ``visibility`` or
``nullValues`` yields the *entire* new value, never an indexed patch.

A key that disappears from a nested mapping is reported with value ``None``.

The output is keyed by position::

    {1: {"baseOptions": {"nullable": True, "nullValues": [""]}}}

This module is **pure Python** — inputs are never mutated and the result
shares no mutable state with them.

Public API
----------
DiffEngine.diff(baseline, working) -> dict[int, dict]
AlignmentError
"""
from __future__ import annotations

import copy
from typing import Any, Mapping, Sequence

from .column_model import Column


class AlignmentError(Exception):
    """Baseline and working sequences differ in length."""

    def __init__(self, baseline_length: int, working_length: int) -> None:
        self.baseline_length = baseline_length
        self.working_length = working_length
        super().__init__(
            f"Cannot diff {working_length} working columns against "
            f"{baseline_length} baseline columns."
        )


class DiffEngine:
    """Computes the position-keyed delta between two column sequences."""

    @staticmethod
    def diff(baseline: Sequence[Column], working: Sequence[Column]) -> dict[int, dict]:
        """
        Return ``{index: nested_delta}`` for every position whose column
        differs between *baseline* and *working*.

        Raises:
            AlignmentError: If the sequences differ in length.  This means the
                column store invariant was broken and must not be recovered
                from.
        """
        if len(baseline) != len(working):
            raise AlignmentError(len(baseline), len(working))

        result: dict[int, dict] = {}
        for index, (before, after) in enumerate(zip(baseline, working)):
            if before is after:
                continue
            delta = _diff_mapping(before.to_dict(), after.to_dict())
            if delta:
                result[index] = delta
        return result


def _diff_mapping(before: Mapping[str, Any], after: Mapping[str, Any]) -> dict[str, Any]:
    delta: dict[str, Any] = {}
    for key, new_value in after.items():
        if key not in before:
            delta[key] = copy.deepcopy(new_value)
            continue
        old_value = before[key]
        if isinstance(old_value, Mapping) and isinstance(new_value, Mapping):
            nested = _diff_mapping(old_value, new_value)
            if nested:
                delta[key] = nested
        elif not _same_leaf(old_value, new_value):
            delta[key] = copy.deepcopy(new_value)
    for key in before:
        if key not in after:
            delta[key] = None
    return delta


def _same_leaf(old_value: Any, new_value: Any) -> bool:
    # True == 1 in Python; a bool flipping to an int is still a change.
    if type(old_value) is not type(new_value):
        if isinstance(old_value, (list, tuple)) and isinstance(new_value, (list, tuple)):
            return list(old_value) == list(new_value)
        return False
    return old_value == new_value
