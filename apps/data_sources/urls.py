"""
apps.data_sources.urls
~~~~~~~~~~~~~~~~~~~~~~
URL routing for the Data Sources application.
Mounted at /api/v1/ by the root URLconf.
"""
from django.urls import path

from .views import (
    DataSourceCreateView,
    TableColumnsEditsView,
    TableColumnsPreviewView,
    TableColumnsView,
)

urlpatterns = [
    # POST /api/v1/data-sources/
    path(
        "data-sources/",
        DataSourceCreateView.as_view(),
        name="data-source-create",
    ),
    # GET, PUT /api/v1/data-sources/<data_source_id>/tables/<table_name>/columns/
    path(
        "data-sources/<str:data_source_id>/tables/<str:table_name>/columns/",
        TableColumnsView.as_view(),
        name="table-columns",
    ),
    # POST /api/v1/data-sources/<data_source_id>/tables/<table_name>/columns/preview/
    path(
        "data-sources/<str:data_source_id>/tables/<str:table_name>/columns/preview/",
        TableColumnsPreviewView.as_view(),
        name="table-columns-preview",
    ),
    # POST /api/v1/data-sources/<data_source_id>/tables/<table_name>/columns/edits/
    path(
        "data-sources/<str:data_source_id>/tables/<str:table_name>/columns/edits/",
        TableColumnsEditsView.as_view(),
        name="table-columns-edits",
    ),
]
