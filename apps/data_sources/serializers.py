"""
apps.data_sources.serializers
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
I/O-only serializers for the Data Sources API.
No business logic; shape validation only.
"""
from rest_framework import serializers

from apps.column_config.services.column_model import display_label, unavailable_options
from apps.column_config.services.inspectors import inspector_registry
from .models import DataSource


# ---------------------------------------------------------------------------
# DataSource
# ---------------------------------------------------------------------------

class DataSourceSerializer(serializers.ModelSerializer):
    """Read serializer for a full DataSource object."""

    class Meta:
        model = DataSource
        fields = ["id", "name", "slug", "engine", "created_at", "updated_at"]
        read_only_fields = fields


class DataSourceCreateSerializer(serializers.Serializer):
    """Validates POST /data-sources/ request body."""

    name = serializers.CharField(max_length=255)
    engine = serializers.ChoiceField(
        choices=DataSource.Engine.choices,
        default=DataSource.Engine.POSTGRESQL,
    )


# ---------------------------------------------------------------------------
# Columns
# ---------------------------------------------------------------------------

class ColumnSerializer(serializers.BaseSerializer):
    """
    Read-only wire representation of a core ``Column``, decorated with the
    hints the editor needs to render it.
    """

    def to_representation(self, column):
        data = column.to_dict()
        data["displayLabel"] = display_label(column)
        data["unavailableOptions"] = unavailable_options(column)
        data["inspector"] = inspector_registry.get(column.field_type).describe(column)
        return data


class UpdateColumnsRequestSerializer(serializers.Serializer):
    """Validates PUT /data-sources/{id}/tables/{table}/columns/ request body."""

    changes = serializers.DictField(child=serializers.DictField())


class ColumnEditSerializer(serializers.Serializer):
    """One ``{column, path, value}`` edit."""

    column = serializers.CharField(max_length=255)
    path = serializers.CharField(max_length=255)
    value = serializers.JSONField(allow_null=True)


class ColumnEditsRequestSerializer(serializers.Serializer):
    """Validates the body of the preview and edits endpoints."""

    edits = ColumnEditSerializer(many=True)


class ColumnsResponseSerializer(serializers.Serializer):
    """Response shape for GET /columns/ and a successful PUT /columns/."""

    columns = serializers.ListField(child=serializers.DictField())


class ChangesResponseSerializer(serializers.Serializer):
    """Response shape for the preview and edits endpoints."""

    columns = serializers.ListField(child=serializers.DictField())
    changes = serializers.DictField()
    isDirty = serializers.BooleanField(required=False)


class ValidationErrorResponseSerializer(serializers.Serializer):
    """Response shape for a 400 change-set rejection."""

    code = serializers.CharField()
    detail = serializers.CharField()
    errors = serializers.ListField(child=serializers.DictField())
