"""
apps.data_sources.views
~~~~~~~~~~~~~~~~~~~~~~~~
Thin DRF API views for the Data Sources application.
All business logic is delegated to
:mod:`apps.data_sources.services.data_source_service`.

Endpoints
---------
POST   /data-sources/                                   – Register data source
GET    /data-sources/{id}/tables/{table}/columns/        – Load columns
PUT    /data-sources/{id}/tables/{table}/columns/        – Apply a change-set
POST   /data-sources/{id}/tables/{table}/columns/preview/ – Dry-run edits
POST   /data-sources/{id}/tables/{table}/columns/edits/   – Apply edits and save
"""
from __future__ import annotations

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.data_sources import services
from .serializers import (
    ChangesResponseSerializer,
    ColumnEditsRequestSerializer,
    ColumnSerializer,
    ColumnsResponseSerializer,
    DataSourceCreateSerializer,
    DataSourceSerializer,
    UpdateColumnsRequestSerializer,
    ValidationErrorResponseSerializer,
)


def _columns_payload(columns) -> list[dict]:
    return ColumnSerializer(columns, many=True).data


class DataSourceCreateView(APIView):
    """POST /data-sources/ – register a new data source."""

    @extend_schema(
        summary="Create Data Source",
        request=DataSourceCreateSerializer,
        responses={
            201: DataSourceSerializer,
            400: OpenApiResponse(description="Validation error – name missing or blank."),
            409: OpenApiResponse(description="A data source with that name already exists."),
        },
        tags=["Data Sources"],
    )
    def post(self, request: Request) -> Response:
        serializer = DataSourceCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data_source = services.create_data_source(**serializer.validated_data)
        return Response(
            DataSourceSerializer(data_source).data,
            status=status.HTTP_201_CREATED,
        )


class TableColumnsView(APIView):
    """GET / PUT /data-sources/{id}/tables/{table}/columns/"""

    @extend_schema(
        summary="Get Table Columns",
        description="Returns the ordered column configuration of a table.",
        responses={
            200: ColumnsResponseSerializer,
            404: OpenApiResponse(description="Data source or table not found."),
        },
        tags=["Columns"],
    )
    def get(self, request: Request, data_source_id: str, table_name: str) -> Response:
        columns = services.get_table_columns(data_source_id=data_source_id, table_name=table_name)
        return Response({"columns": _columns_payload(columns)})

    @extend_schema(
        summary="Apply Column Changes",
        description=(
            "Applies a name-keyed change-set to the table's columns. Either every "
            "patch is applied or none is; rejected patches are listed in the 400 "
            "response, each naming its column."
        ),
        request=UpdateColumnsRequestSerializer,
        responses={
            200: ColumnsResponseSerializer,
            400: ValidationErrorResponseSerializer,
            404: OpenApiResponse(description="Data source or table not found."),
        },
        tags=["Columns"],
    )
    def put(self, request: Request, data_source_id: str, table_name: str) -> Response:
        serializer = UpdateColumnsRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        columns = services.update_table_columns(
            data_source_id=data_source_id,
            table_name=table_name,
            changes=serializer.validated_data["changes"],
        )
        return Response({"columns": _columns_payload(columns)})


class TableColumnsPreviewView(APIView):
    """POST /data-sources/{id}/tables/{table}/columns/preview/"""

    @extend_schema(
        summary="Preview Column Edits",
        description=(
            "Runs the edits through the column store, constraint rules included, "
            "and returns the resulting columns and change-set. Nothing is saved."
        ),
        request=ColumnEditsRequestSerializer,
        responses={
            200: ChangesResponseSerializer,
            404: OpenApiResponse(description="Data source, table or column not found."),
            422: OpenApiResponse(description="An edit names an invalid option."),
        },
        tags=["Columns"],
    )
    def post(self, request: Request, data_source_id: str, table_name: str) -> Response:
        serializer = ColumnEditsRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        session = services.preview_edits(
            data_source_id=data_source_id,
            table_name=table_name,
            edits=serializer.validated_data["edits"],
        )
        return Response({
            "columns": _columns_payload(session.columns),
            "changes": session.changes(),
            "isDirty": session.is_dirty,
        })


class TableColumnsEditsView(APIView):
    """POST /data-sources/{id}/tables/{table}/columns/edits/"""

    @extend_schema(
        summary="Save Column Edits",
        description="Runs the edits through the column store and saves the resulting change-set.",
        request=ColumnEditsRequestSerializer,
        responses={
            200: ChangesResponseSerializer,
            400: ValidationErrorResponseSerializer,
            404: OpenApiResponse(description="Data source, table or column not found."),
            422: OpenApiResponse(description="An edit names an invalid option."),
        },
        tags=["Columns"],
    )
    def post(self, request: Request, data_source_id: str, table_name: str) -> Response:
        serializer = ColumnEditsRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        session, changes = services.save_edits(
            data_source_id=data_source_id,
            table_name=table_name,
            edits=serializer.validated_data["edits"],
        )
        return Response({
            "columns": _columns_payload(session.columns),
            "changes": changes,
        })
