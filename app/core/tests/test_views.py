"""
Tests for the health check endpoint.
"""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest
from django.db import OperationalError
from django.test import RequestFactory

from core.views import health_check


@pytest.fixture
def request_():
    return RequestFactory().get("/health/")


def body_of(response):
    return json.loads(response.content)


@pytest.mark.django_db
class TestHealthCheck:
    @patch("core.views.get_redis_connection")
    def test_healthy(self, mock_redis, request_):
        response = health_check(request_)

        assert response.status_code == 200
        assert body_of(response) == {
            "status": "healthy",
            "database": "connected",
            "redis": "connected",
        }

    @patch("core.views.get_redis_connection")
    def test_redis_down_is_degraded(self, mock_redis, request_):
        mock_redis.return_value.ping.side_effect = ConnectionError("refused")

        response = health_check(request_)

        assert response.status_code == 200
        assert body_of(response)["status"] == "degraded"
        assert body_of(response)["redis"] == "disconnected"

    @patch("core.views.get_redis_connection")
    @patch("core.views.connection")
    def test_database_down_is_unhealthy(self, mock_connection, mock_redis, request_):
        mock_connection.cursor.side_effect = OperationalError("no db")

        response = health_check(request_)

        assert response.status_code == 503
        assert body_of(response)["status"] == "unhealthy"
        assert body_of(response)["database"] == "disconnected"
