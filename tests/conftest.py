"""Shared pytest fixtures for Resilient API SDK tests."""

import os
import random

import pytest
from dotenv import load_dotenv
from unittest.mock import Mock

# Load environment variables from .env file for tests
load_dotenv()

from resilient_api_sdk.cache.invalidation import CacheInvalidationCoordinator
from resilient_api_sdk.config.settings import ClientSettings
from resilient_api_sdk.models.policy import RetryPolicy
from resilient_api_sdk.observability.telemetry import OperationTelemetry
from tests.helpers.mock_transport import BASE_URL


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast isolated tests")
    config.addinivalue_line("markers", "integration: end-to-end scenarios across components")
    config.addinivalue_line("markers", "slow: tests that wait on real timers")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep RESILIENT_API_* variables from a developer's shell out of tests."""
    for key in list(os.environ):
        if key.startswith("RESILIENT_API_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def seeded_rng():
    return random.Random(1234)


@pytest.fixture
def fast_policy():
    """Retry policy with millisecond delays so tests do not wait."""
    return RetryPolicy(max_retries=3, initial_delay_ms=1, max_delay_ms=10)


@pytest.fixture
def settings():
    return ClientSettings(
        base_url=BASE_URL,
        timeout_ms=1000,
        max_retries=3,
        initial_delay_ms=1,
        max_delay_ms=10,
    )


@pytest.fixture
def telemetry():
    registry = OperationTelemetry(capacity=100)
    yield registry
    registry.dispose()


@pytest.fixture
def coordinator():
    return CacheInvalidationCoordinator()


@pytest.fixture
def session_handler():
    handler = Mock()
    handler.current_identity = Mock(return_value={"id": 1})
    handler.on_session_invalid = Mock()
    return handler
