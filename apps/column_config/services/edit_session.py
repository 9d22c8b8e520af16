"""
apps.column_config.services.edit_session
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
One operator's editing session over a table's columns.

The session seeds a :class:`~apps.column_config.services.column_store.ColumnStore`
from a :class:`ColumnPersistence` collaborator and hands the store's
change-set back to it on an explicit :meth:`EditSession.save`.

Save semantics:

- Nothing is sent when the session is not dirty.
- A rejected save raises :class:`SaveFailedError`; the working state is left
  exactly as it was so the operator can fix it and retry, or discard.
- A save is never retried automatically.
- After a successful save the confirmed columns are reloaded from the
  collaborator and become the new baseline.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, Sequence

import structlog

from .column_model import Column
from .column_store import ColumnStore
from .patch_builder import ChangeSet

logger = structlog.get_logger(__name__)


@dataclass
class SaveResult:
    """
    Outcome reported by :meth:`ColumnPersistence.update_columns`.

    Attributes:
        ok: ``True`` iff every patch was applied.
        errors: On failure, error dicts naming the rejected column
            (``"column"``), option path, code and message.
    """

    ok: bool
    errors: list[dict[str, str]] = field(default_factory=list)


class SaveFailedError(Exception):
    """The persistence collaborator rejected the change-set."""

    def __init__(self, errors: list[dict[str, str]]) -> None:
        self.errors = errors
        columns = sorted({err.get("column", "") for err in errors if err.get("column")})
        super().__init__(f"Saving column changes failed for: {', '.join(columns) or 'unknown columns'}.")


class ColumnPersistence(Protocol):
    """Load and save interface for the columns of one table."""

    def load_columns(self) -> Sequence[Column]:
        ...

    def update_columns(self, changes: ChangeSet) -> SaveResult:
        """Apply every patch in *changes* atomically, or none of them."""
        ...


class EditSession:
    """Couples a :class:`ColumnStore` to its persistence collaborator."""

    def __init__(self, persistence: ColumnPersistence) -> None:
        self.persistence = persistence
        self.store = ColumnStore(persistence.load_columns())

    @property
    def columns(self) -> tuple[Column, ...]:
        return self.store.snapshot()

    @property
    def is_dirty(self) -> bool:
        return self.store.is_dirty

    def mutate(self, name: str, path: str, value: Any) -> tuple[Column, ...]:
        return self.store.mutate(name, path, value)

    def changes(self) -> ChangeSet:
        return self.store.changes()

    def discard(self) -> tuple[Column, ...]:
        return self.store.discard()

    def reload(self) -> tuple[Column, ...]:
        """Drop all edits and start over from freshly loaded columns."""
        self.store.rebase(self.persistence.load_columns())
        return self.store.snapshot()

    def save(self) -> ChangeSet:
        """
        Send the current change-set to the persistence collaborator.

        Returns:
            The change-set that was saved (``{}`` when nothing was dirty).

        Raises:
            SaveFailedError: If the collaborator rejected the change-set.
        """
        changes = self.store.changes()
        if not changes:
            return changes

        result = self.persistence.update_columns(changes)
        if not result.ok:
            logger.warning(
                "column_changes_rejected",
                columns=sorted(changes),
                error_count=len(result.errors),
            )
            raise SaveFailedError(result.errors)

        logger.info("column_changes_saved", columns=sorted(changes))
        self.reload()
        return changes
