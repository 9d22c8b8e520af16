"""
common.exceptions
~~~~~~~~~~~~~~~~~
Centralised DRF exception handler and custom exception classes.

Every :class:`AppError` renders as ``{"code": ..., "detail": ...}``.
:class:`ChangeSetRejectedError` adds ``"errors"``, one entry per rejected
column patch.
"""
from typing import Any

import structlog
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = structlog.get_logger(__name__)


class AppError(Exception):
    """Base application error.  Subclass to define domain-specific errors."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    default_code: str = "error"
    default_detail: str = "An error occurred."

    def __init__(self, detail: str | None = None, code: str | None = None) -> None:
        self.detail = detail or self.default_detail
        self.code = code or self.default_code

    def __str__(self) -> str:
        return self.detail

    def get_payload(self) -> dict[str, Any]:
        return {"code": self.code, "detail": self.detail}


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_code = "not_found"
    default_detail = "The requested resource was not found."


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_code = "conflict"
    default_detail = "A resource conflict occurred."


class ValidationError(AppError):
    """An edit names an option path or value that cannot be applied."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_code = "validation_error"
    default_detail = "Validation failed."


class ChangeSetRejectedError(AppError):
    """
    The persistence layer refused a change-set.  Nothing was written.

    Attributes:
        errors: Error dicts with ``column``, ``field``, ``code`` and
            ``message`` keys.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "change_set_rejected"
    default_detail = "One or more column patches were rejected."

    def __init__(self, errors: list[dict[str, str]], detail: str | None = None) -> None:
        super().__init__(detail)
        self.errors = errors

    def get_payload(self) -> dict[str, Any]:
        return {**super().get_payload(), "errors": self.errors}


def custom_exception_handler(exc: Exception, context: dict) -> Response | None:
    """
    Global DRF exception handler.
    Converts AppError subclasses to JSON responses and delegates everything
    else to the default DRF handler so standard DRF exceptions still work.
    """
    if isinstance(exc, AppError):
        extra: dict[str, Any] = {}
        if isinstance(exc, ChangeSetRejectedError):
            extra["rejected_columns"] = sorted({err.get("column", "") for err in exc.errors})
        logger.warning(
            "app_error",
            code=exc.code,
            detail=exc.detail,
            status_code=exc.status_code,
            **extra,
        )
        return Response(exc.get_payload(), status=exc.status_code)

    response = drf_exception_handler(exc, context)
    if response is not None:
        logger.warning(
            "drf_error",
            detail=response.data,
            status_code=response.status_code,
        )
    else:
        logger.exception("unhandled_exception", exc_info=exc)

    return response
