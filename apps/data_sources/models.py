"""
apps.data_sources.models
~~~~~~~~~~~~~~~~~~~~~~~~
DataSource – a connected physical data source.
TableColumn – the stored metadata of one column of one of its tables.
"""
from django.db import models
from django.utils.text import slugify

from apps.column_config.services.column_model import (
    ALL_VIEWS,
    Column,
    FieldType,
)


class DataSource(models.Model):
    """
    A physical data source whose tables have editable column metadata.

    Fields
    ------
    id
        Auto-incrementing integer primary key.
    name
        Human-readable unique name (e.g. ``"Production Postgres"``).
    slug
        URL-safe version of ``name``, auto-generated on first save.
    engine
        Kind of physical source.  Informational only; no connection is
        ever opened from this service.
    created_at / updated_at
        Automatic timestamps.
    """

    class Engine(models.TextChoices):
        POSTGRESQL = "postgresql", "PostgreSQL"
        MYSQL = "mysql", "MySQL"
        MSSQL = "mssql", "SQL Server"
        GOOGLE_SHEETS = "google-sheets", "Google Sheets"

    name = models.CharField(max_length=255, unique=True)
    slug = models.SlugField(
        max_length=255,
        unique=True,
        blank=True,
        help_text="URL-safe identifier auto-generated from the data source name.",
    )
    engine = models.CharField(
        max_length=32,
        choices=Engine.choices,
        default=Engine.POSTGRESQL,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["id"]
        verbose_name = "Data Source"
        verbose_name_plural = "Data Sources"

    def save(self, *args, **kwargs) -> None:
        """Auto-populate ``slug`` on first save."""
        if not self.slug:
            self.slug = slugify(self.name)
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"#{self.id} {self.name}" if self.id else self.name


def _default_base_options() -> dict:
    return {"visibility": list(ALL_VIEWS)}


class TableColumn(models.Model):
    """
    Stored metadata of one column, in the wire shape used by
    :class:`~apps.column_config.services.column_model.Column`.

    ``position`` fixes the column order of the table; it is never changed by
    a change-set.  ``data_source_info`` mirrors what the physical source
    reported and is read-only for the API.
    """

    data_source = models.ForeignKey(
        DataSource,
        on_delete=models.CASCADE,
        related_name="columns",
    )
    table_name = models.CharField(max_length=255)
    name = models.CharField(max_length=255)
    position = models.PositiveIntegerField(default=0)
    field_type = models.CharField(
        max_length=32,
        choices=[(ft.value, ft.value) for ft in FieldType],
        default=FieldType.TEXT.value,
    )
    label = models.CharField(max_length=255, blank=True, null=True)
    base_options = models.JSONField(default=_default_base_options, blank=True)
    field_options = models.JSONField(default=dict, blank=True)
    data_source_info = models.JSONField(
        default=dict,
        blank=True,
        help_text="Capability flags reported by the physical source, e.g. {\"nullable\": false}.",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["data_source", "table_name", "position", "id"]
        unique_together = [("data_source", "table_name", "name")]
        verbose_name = "Table Column"
        verbose_name_plural = "Table Columns"

    def __str__(self) -> str:
        return f"{self.data_source.slug}/{self.table_name}.{self.name}"

    # ------------------------------------------------------------------
    # Conversion to / from the core model
    # ------------------------------------------------------------------

    def to_column(self) -> Column:
        return Column.from_dict({
            "name": self.name,
            "fieldType": self.field_type,
            "label": self.label,
            "baseOptions": self.base_options,
            "fieldOptions": self.field_options,
            "dataSourceInfo": self.data_source_info,
        })

    def assign_column(self, column: Column) -> None:
        """Copy the editable parts of *column* onto this row (not saved)."""
        data = column.to_dict()
        self.field_type = data["fieldType"]
        self.label = data["label"]
        self.base_options = data["baseOptions"]
        self.field_options = data["fieldOptions"]
