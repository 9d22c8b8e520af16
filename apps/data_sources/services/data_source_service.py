"""
apps.data_sources.services.data_source_service
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
All business logic for the Data Sources application.

Views must call only these functions.  No business logic lives in views or
serializers.

Responsibilities
----------------
- Creating and fetching :class:`~apps.data_sources.models.DataSource` rows.
- Loading a table's columns as core
  :class:`~apps.column_config.services.column_model.Column` values.
- Acting as the column persistence collaborator: validating a change-set via
  :class:`~apps.column_config.services.change_set_validator.ChangeSetValidationService`
  and applying it all-or-nothing.
- Running editor edits through an
  :class:`~apps.column_config.services.edit_session.EditSession`, either as
  a dry-run preview or followed by a save.
"""
from __future__ import annotations

from typing import Any, Iterable

import structlog
from django.db import IntegrityError, transaction
from django.db.models import Q

from apps.column_config.services.change_set_validator import (
    ChangeSetValidationRequest,
    ChangeSetValidationService,
)
from apps.column_config.services.column_model import (
    Column,
    InvalidOptionValueError,
    InvalidPathError,
)
from apps.column_config.services.column_store import ColumnNotFoundError
from apps.column_config.services.edit_session import EditSession, SaveFailedError, SaveResult
from apps.column_config.services.patch_builder import ChangeSet, PatchBuilder
from apps.data_sources.models import DataSource, TableColumn
from common.exceptions import (
    ChangeSetRejectedError,
    ConflictError,
    NotFoundError,
    ValidationError,
)

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# DataSource CRUD
# ---------------------------------------------------------------------------

def create_data_source(*, name: str, engine: str = DataSource.Engine.POSTGRESQL) -> DataSource:
    """
    Create a new :class:`DataSource`.

    Raises:
        common.exceptions.ConflictError: If a data source with *name*
            already exists.
    """
    try:
        with transaction.atomic():
            data_source = DataSource.objects.create(name=name, engine=engine)
    except IntegrityError as exc:
        raise ConflictError(f"A data source named '{name}' already exists.") from exc
    logger.info("data_source_created", data_source_id=str(data_source.id), name=data_source.name)
    return data_source


def get_data_source(data_source_id: str | int) -> DataSource:
    """
    Fetch a :class:`DataSource` by integer ID or slug.

    Raises:
        common.exceptions.NotFoundError: If no data source matches.
    """
    if str(data_source_id).isdigit():
        q = Q(id=int(data_source_id)) | Q(slug=str(data_source_id))
    else:
        q = Q(slug=str(data_source_id))

    data_source = DataSource.objects.filter(q).first()
    if data_source is None:
        raise NotFoundError(f"Data source '{data_source_id}' not found.")
    return data_source


# ---------------------------------------------------------------------------
# Column persistence
# ---------------------------------------------------------------------------

class DjangoColumnPersistence:
    """
    Column persistence collaborator backed by :class:`TableColumn` rows.

    Scoped to one table of one data source.
    """

    def __init__(self, data_source: DataSource, table_name: str) -> None:
        self.data_source = data_source
        self.table_name = table_name

    def _rows(self):
        return TableColumn.objects.filter(
            data_source=self.data_source, table_name=self.table_name
        ).order_by("position", "id")

    def load_columns(self) -> list[Column]:
        columns = [row.to_column() for row in self._rows()]
        if not columns:
            raise NotFoundError(
                f"Table '{self.table_name}' has no columns in data source "
                f"'{self.data_source.slug}'."
            )
        return columns

    def update_columns(self, changes: ChangeSet) -> SaveResult:
        """
        Validate *changes* and, if every patch is acceptable, write them all
        in one transaction.  When any patch is rejected nothing is written.
        """
        with transaction.atomic():
            rows = list(self._rows().select_for_update())
            columns = [row.to_column() for row in rows]

            result = ChangeSetValidationService.validate(
                ChangeSetValidationRequest(columns=columns, changes=changes)
            )
            if not result.valid:
                return SaveResult(ok=False, errors=result.errors)

            merged = PatchBuilder.apply_change_set(columns, changes)
            for row, column in zip(rows, merged):
                if column.name in changes:
                    row.assign_column(column)
                    row.save(update_fields=[
                        "field_type", "label", "base_options", "field_options", "updated_at",
                    ])

        logger.info(
            "column_changes_applied",
            data_source_id=str(self.data_source.id),
            table_name=self.table_name,
            columns=sorted(changes),
        )
        return SaveResult(ok=True)


def get_table_columns(*, data_source_id: str, table_name: str) -> list[Column]:
    """
    Return the ordered columns of *table_name*.

    Raises:
        common.exceptions.NotFoundError: If the data source or the table
            does not exist.
    """
    data_source = get_data_source(data_source_id)
    return DjangoColumnPersistence(data_source, table_name).load_columns()


def update_table_columns(*, data_source_id: str, table_name: str, changes: dict) -> list[Column]:
    """
    Apply a change-set sent by the editor.

    Returns:
        The table's columns after the change-set was applied.

    Raises:
        common.exceptions.NotFoundError: If the data source or the table
            does not exist.
        common.exceptions.ChangeSetRejectedError: If any patch was
            rejected.  ``errors`` names each rejected column; nothing was
            written.
    """
    data_source = get_data_source(data_source_id)
    persistence = DjangoColumnPersistence(data_source, table_name)
    # Raises NotFoundError for an unknown table before anything is validated.
    persistence.load_columns()

    result = persistence.update_columns(changes)
    if not result.ok:
        logger.warning(
            "column_changes_validation_failed",
            data_source_id=str(data_source.id),
            table_name=table_name,
            error_count=len(result.errors),
        )
        raise ChangeSetRejectedError(result.errors)
    return persistence.load_columns()


# ---------------------------------------------------------------------------
# Editor edits
# ---------------------------------------------------------------------------

def _open_session(data_source_id: str, table_name: str, edits: Iterable[dict[str, Any]]) -> EditSession:
    data_source = get_data_source(data_source_id)
    session = EditSession(DjangoColumnPersistence(data_source, table_name))
    for edit in edits:
        try:
            session.mutate(edit["column"], edit["path"], edit["value"])
        except ColumnNotFoundError as exc:
            raise NotFoundError(str(exc)) from exc
        except (InvalidPathError, InvalidOptionValueError) as exc:
            raise ValidationError(str(exc), code="invalid_option") from exc
    return session


def preview_edits(*, data_source_id: str, table_name: str, edits: list[dict[str, Any]]) -> EditSession:
    """
    Run *edits* through a fresh edit session without saving.

    Each edit is ``{"column": name, "path": option_path, "value": value}``
    and is applied in order through the column store, so constraint rules
    run exactly as they do in the editor.

    Raises:
        common.exceptions.NotFoundError: Unknown data source, table or column.
        common.exceptions.ValidationError: An edit names an invalid option
            path or value.
    """
    return _open_session(data_source_id, table_name, edits)


def save_edits(
    *, data_source_id: str, table_name: str, edits: list[dict[str, Any]]
) -> tuple[EditSession, ChangeSet]:
    """
    Run *edits* through a fresh edit session and save the result.

    Returns:
        ``(session, changes)`` where *session* holds the reloaded columns.

    Raises:
        common.exceptions.ChangeSetRejectedError: If the change-set was
            rejected.  Nothing was written.
    """
    session = _open_session(data_source_id, table_name, edits)
    try:
        changes = session.save()
    except SaveFailedError as exc:
        raise ChangeSetRejectedError(exc.errors, detail=str(exc)) from exc
    return session, changes
