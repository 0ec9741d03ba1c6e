"""
Pytest configuration and shared fixtures.

The test environment is set here, before the package is imported, so the
module-level settings, engine and app all pick it up.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_tracker_sms.db")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("SEED_DATABASE", "false")
os.environ.setdefault("DISPATCH_LATENCY_MS", "0")
os.environ.setdefault("RATE_LIMIT_MAX", "100000")
os.environ.setdefault("DB_CONNECT_RETRIES", "1")
os.environ.setdefault("API_KEY", "")

import pytest
from fastapi.testclient import TestClient

# Clear settings cache before any app imports to ensure test env vars are used
from tracker_sms.config import get_settings
get_settings.cache_clear()

from tracker_sms.dispatch import MockDispatcher, get_dispatcher
from tracker_sms.main import app
from tracker_sms.storage import Base, engine


@pytest.fixture(scope="function")
def client():
    """Create test client with fresh database for each test."""
    Base.metadata.create_all(bind=engine)
    app.state.rate_limiter.reset()

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    Base.metadata.drop_all(bind=engine)


def use_dispatcher(dispatcher) -> None:
    """Route every send through ``dispatcher`` for the rest of the test."""
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher


@pytest.fixture
def always_sent():
    dispatcher = MockDispatcher(success_rate=1.0, latency_seconds=0)
    use_dispatcher(dispatcher)
    return dispatcher


@pytest.fixture
def always_failed():
    dispatcher = MockDispatcher(success_rate=0.0, latency_seconds=0)
    use_dispatcher(dispatcher)
    return dispatcher


def create_model(client, name: str, description: str = None) -> dict:
    """Helper to create a device model through the API."""
    response = client.post("/api/models", json={"name": name, "description": description})
    assert response.status_code == 201
    return response.json()["data"]


def create_command(client, model_id: int, command_text: str, description: str = None) -> dict:
    """Helper to add a command through the API."""
    response = client.post(
        "/api/commands",
        json={"modelId": model_id, "commandText": command_text, "description": description},
    )
    assert response.status_code == 201
    return response.json()["data"]
