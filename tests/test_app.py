"""
Tests for app wiring: health checks, request ids and the error body shape.
"""
from unittest.mock import patch

from fastapi import status


class TestAppWiring:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "healthy"

    def test_celery_health_without_workers(self, client):
        with patch("main.celery_app.control.inspect") as inspect:
            inspect.return_value.stats.return_value = None
            response = client.get("/celery-health")
        assert response.json()["status"] == "no_workers"

    def test_request_id_is_generated(self, client):
        response = client.get("/health")
        assert response.headers["X-Request-ID"]

    def test_request_id_is_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"

    def test_error_body_shape(self, client):
        response = client.get("/orders/anything")
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        body = response.json()
        assert body["success"] is False
        assert body["detail"] == "Access token required"
        assert body["path"] == "/orders/anything"
        assert body["method"] == "GET"
        assert body["timestamp"]
