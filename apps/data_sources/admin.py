"""
apps.data_sources.admin
~~~~~~~~~~~~~~~~~~~~~~~
Django admin registrations for the Data Sources application.
"""
from django.contrib import admin

from .models import DataSource, TableColumn


@admin.register(DataSource)
class DataSourceAdmin(admin.ModelAdmin):
    list_display = ["id", "name", "slug", "engine", "created_at"]
    list_filter = ["engine"]
    search_fields = ["name", "slug"]
    readonly_fields = ["id", "slug", "created_at", "updated_at"]
    ordering = ["id"]


@admin.register(TableColumn)
class TableColumnAdmin(admin.ModelAdmin):
    """
    Admin interface for stored column metadata.

    ``name`` and ``data_source_info`` describe the physical column and are
    read-only once the row exists.
    """

    list_display = ["name", "table_name", "data_source", "field_type", "position", "updated_at"]
    list_filter = ["data_source", "field_type"]
    search_fields = ["name", "table_name", "data_source__name"]
    readonly_fields = ["id", "created_at", "updated_at"]
    ordering = ["data_source", "table_name", "position"]

    def get_readonly_fields(self, request, obj=None):
        if obj is not None:
            return list(self.readonly_fields) + ["name", "data_source_info"]
        return self.readonly_fields
