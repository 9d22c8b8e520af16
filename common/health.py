"""
common.health
~~~~~~~~~~~~~
GET /health/ – lightweight liveness + readiness probe.

Returns:
    200  {"status": "ok",   "db": "ok",   "data_sources": <int>}
    503  {"status": "degraded", "db": "error: <msg>"} – DB unreachable
"""
import structlog
from django.db import DatabaseError, connection
from django.http import JsonResponse

from apps.data_sources.models import DataSource

logger = structlog.get_logger(__name__)


def health_check(request):
    """Return service health: database connectivity and registered data sources."""
    payload: dict = {}

    try:
        connection.ensure_connection()
        payload["data_sources"] = DataSource.objects.count()
        payload["db"] = "ok"
        http_status = 200
    except DatabaseError as exc:
        payload["db"] = f"error: {exc}"
        http_status = 503
        logger.error("health_check_db_failure", error=str(exc))

    payload["status"] = "ok" if http_status == 200 else "degraded"
    return JsonResponse(payload, status=http_status)
