"""
apps.column_config.services.column_store
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Baseline / working state of one table's column configuration.

The store keeps two index-aligned tuples.  ``baseline`` is what was loaded;
``working`` is what the operator has edited.  The only way to change
``working`` is :meth:`ColumnStore.mutate`, which replaces a single entry at
the position it already occupies.  Entries are never reordered, inserted or
removed, so the two tuples can always be diffed by position.

The diff and change-set are derived from ``(baseline, working)`` on demand
and cached until ``working`` changes.
"""
from __future__ import annotations

import copy
from typing import Any, Iterable

import structlog

from .column_model import Column, with_option
from .constraint_engine import ConstraintEngine
from .diff_engine import DiffEngine
from .patch_builder import ChangeSet, PatchBuilder

logger = structlog.get_logger(__name__)


class ColumnNotFoundError(LookupError):
    """No column with the requested name exists in the store."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f'Column "{name}" does not exist.')


class DuplicateColumnError(ValueError):
    """Two columns of the same table share a name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f'Column "{name}" appears more than once.')


class ColumnStore:
    """
    Holds the immutable baseline and the current working configuration.

    Usage::

        store = ColumnStore(load_columns())
        store.mutate("email", "baseOptions.nullable", True)
        if store.is_dirty:
            persistence.update_columns(store.changes())
    """

    def __init__(self, baseline: Iterable[Column]) -> None:
        self.rebase(baseline)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def baseline(self) -> tuple[Column, ...]:
        return self._baseline

    @property
    def working(self) -> tuple[Column, ...]:
        return self._working

    def snapshot(self) -> tuple[Column, ...]:
        """Return the current working sequence."""
        return self._working

    def rebase(self, columns: Iterable[Column]) -> None:
        """
        Install *columns* as a fresh baseline and reset ``working`` to it.

        Raises:
            DuplicateColumnError: If two columns share a name.
        """
        columns = tuple(columns)
        index: dict[str, int] = {}
        for position, column in enumerate(columns):
            if column.name in index:
                raise DuplicateColumnError(column.name)
            index[column.name] = position

        self._baseline = columns
        self._working = columns
        self._positions = index
        self._memo: tuple[tuple[Column, ...], dict[int, dict]] | None = None

    def discard(self) -> tuple[Column, ...]:
        """Drop every edit; ``working`` becomes the baseline again."""
        self._working = self._baseline
        return self._working

    # ------------------------------------------------------------------
    # Reads and the mutation entry point
    # ------------------------------------------------------------------

    def get(self, name: str) -> Column:
        """
        Return the working column called *name*.

        Raises:
            ColumnNotFoundError: If no such column exists.
        """
        return self._working[self._position(name)]

    def mutate(self, name: str, path: str, value: Any) -> tuple[Column, ...]:
        """
        Set option *path* of column *name* to *value*, normalise the result
        through :class:`ConstraintEngine` and commit it in place.

        Returns:
            The new working sequence.

        Raises:
            ColumnNotFoundError: If no column is called *name*.
            InvalidPathError: If *path* does not resolve.  Nothing is
                committed.
        """
        position = self._position(name)
        proposed = with_option(self._working[position], path, value)
        column = ConstraintEngine.apply(proposed, path, value)

        working = list(self._working)
        working[position] = column
        self._working = tuple(working)

        logger.debug("column_mutated", column=name, path=path)
        return self._working

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    def diff(self) -> dict[int, dict]:
        """Position-keyed delta between baseline and working (cached)."""
        if self._memo is None or self._memo[0] is not self._working:
            self._memo = (self._working, DiffEngine.diff(self._baseline, self._working))
        return copy.deepcopy(self._memo[1])

    def changes(self) -> ChangeSet:
        """Name-keyed change-set ready for the persistence layer."""
        return PatchBuilder.build_change_set(self.diff(), self._working)

    @property
    def is_dirty(self) -> bool:
        return len(self.changes()) > 0

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _position(self, name: str) -> int:
        try:
            return self._positions[name]
        except KeyError:
            raise ColumnNotFoundError(name) from None
