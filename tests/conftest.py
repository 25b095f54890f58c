"""Pytest configuration and shared fixtures."""
import os

# Must be set before any company_service module reads settings
os.environ["ENVIRONMENT"] = "test"
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["KAFKA_ENABLED"] = "false"
os.environ["AUTH_MODE"] = "mock"

import asyncio
from typing import Any, Dict, List, Tuple

import pytest
from fastapi.testclient import TestClient

from company_service.core.errors import PublishError
from company_service.domain.company import Company
from company_service.domain.ports import EventPublisher
from company_service.infrastructure.memory import InMemoryCompanyRepository
from company_service.services.companies import CompanyService


class RecordingPublisher(EventPublisher):
    """Event port double that keeps every published event."""

    def __init__(self):
        self.events: List[Tuple[str, Dict[str, Any]]] = []
        self.closed = False

    async def publish(self, event_type: str, payload: Dict[str, Any]) -> None:
        self.events.append((event_type, payload))

    async def close(self) -> None:
        self.closed = True

    @property
    def event_types(self) -> List[str]:
        return [event_type for event_type, _ in self.events]


class FailingPublisher(EventPublisher):
    """Event port double whose every publish fails."""

    def __init__(self, error: Exception = None):
        self.error = error or PublishError("any", "broker unavailable")
        self.attempts = 0

    async def publish(self, event_type: str, payload: Dict[str, Any]) -> None:
        self.attempts += 1
        raise self.error


class SlowPublisher(RecordingPublisher):
    """Records events after a fixed delay."""

    def __init__(self, delay: float):
        super().__init__()
        self.delay = delay

    async def publish(self, event_type: str, payload: Dict[str, Any]) -> None:
        await asyncio.sleep(self.delay)
        await super().publish(event_type, payload)


class HangingPublisher(EventPublisher):
    """Event port double that never completes a publish."""

    async def publish(self, event_type: str, payload: Dict[str, Any]) -> None:
        await asyncio.sleep(3600)


@pytest.fixture
def acme():
    """Valid, not yet persisted company."""
    return Company(name="Acme", employees=10, registered=True, type="Corporations")


@pytest.fixture
def repository():
    return InMemoryCompanyRepository()


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def service(repository, publisher):
    return CompanyService(repository, publisher)


@pytest.fixture
def test_client():
    """FastAPI test client with a fresh in-memory store per test."""
    from main import app
    with TestClient(app) as client:
        yield client


@pytest.fixture
def recorded_events(test_client):
    """Swap the app's event port for a recording one."""
    recorder = RecordingPublisher()
    test_client.app.state.company_service.publisher = recorder
    return recorder


@pytest.fixture
def auth_headers():
    return {"Authorization": "Bearer test-token"}


@pytest.fixture
def acme_payload():
    return {"name": "Acme", "employees": 10, "registered": True, "type": "Corporations"}
