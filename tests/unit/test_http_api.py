"""Unit tests for the telemetry HTTP endpoints."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from resilient_api_sdk.http.api import create_telemetry_router
from resilient_api_sdk.observability.telemetry import OperationTelemetry

pytestmark = pytest.mark.unit


@pytest.fixture
def registry():
    return OperationTelemetry(capacity=50)


@pytest.fixture
def http_client(registry):
    app = FastAPI()
    app.include_router(create_telemetry_router(registry))
    return TestClient(app)


class TestTelemetryEndpoints:

    def test_metrics(self, http_client, registry):
        registry.record("apiRequest", 120, {"url": "/api/offers"})
        registry.record("renderTime", 8)

        response = http_client.get("/telemetry/metrics")

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 2
        assert data["metrics"][0]["metadata"] == {"url": "/api/offers"}

    def test_metrics_filtered(self, http_client, registry):
        registry.record("apiRequest", 120)
        registry.record("renderTime", 8)

        data = http_client.get("/telemetry/metrics", params={"name": "renderTime"}).json()

        assert data["name"] == "renderTime"
        assert [m["name"] for m in data["metrics"]] == ["renderTime"]

    def test_average(self, http_client, registry):
        registry.record("apiRequest", 100)
        registry.record("apiRequest", 300)

        data = http_client.get("/telemetry/average/apiRequest", params={"window_ms": 60000}).json()

        assert data == {"name": "apiRequest", "window_ms": 60000, "average": 200.0}

    def test_average_rejects_bad_window(self, http_client):
        response = http_client.get("/telemetry/average/apiRequest", params={"window_ms": 0})
        assert response.status_code == 400

    def test_summary(self, http_client, registry):
        registry.record("apiRequest", 100)

        data = http_client.get("/telemetry/summary").json()

        assert data["total_metrics"] == 1
        assert data["metrics"]["apiRequest"]["count"] == 1

    def test_disposed_registry(self, http_client, registry):
        registry.dispose()

        response = http_client.get("/telemetry/metrics")

        assert response.status_code == 503
