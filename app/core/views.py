"""
Core views providing infrastructure endpoints.

This module contains views that are not part of the business domain but are
essential for application infrastructure, such as health checks.
"""

import logging

from django.db import connection
from django.http import JsonResponse
from django_redis import get_redis_connection

logger = logging.getLogger(__name__)


def health_check(request):
    """
    Health check endpoint for monitoring and orchestration.

    Returns:
        JsonResponse with status and component health:
        - status: "healthy", "degraded" or "unhealthy"
        - database: "connected" or "disconnected"
        - redis: "connected" or "disconnected"

    HTTP Status Codes:
        200: Database reachable (Redis down only degrades payout batches)
        503: Database unreachable

    Example Response:
        {
            "status": "healthy",
            "database": "connected",
            "redis": "connected"
        }
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "redis": "unknown",
    }
    is_healthy = True

    # Check database connectivity
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        health_status["database"] = "connected"
    except Exception:
        logger.warning("Health check: database unreachable", exc_info=True)
        health_status["database"] = "disconnected"
        health_status["status"] = "unhealthy"
        is_healthy = False

    # Redis backs the payout batch lock
    try:
        get_redis_connection("default").ping()
        health_status["redis"] = "connected"
    except Exception:
        logger.warning("Health check: redis unreachable", exc_info=True)
        health_status["redis"] = "disconnected"
        if is_healthy:
            health_status["status"] = "degraded"

    status_code = 200 if is_healthy else 503

    return JsonResponse(health_status, status=status_code)
