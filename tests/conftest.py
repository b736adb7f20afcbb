import os
import sys
import pytest
from fastapi.testclient import TestClient

# Add the project root directory to Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from jobrelay.config import Settings
from jobrelay.job_store import InMemoryJobStore
from jobrelay.main import create_app
from jobrelay.scheduler import Scheduler

TEST_SECRET = "test-secret"


def pytest_configure(config):
    """Add custom markers"""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "e2e: End-to-end tests")
    config.addinivalue_line("markers", "api: API tests")


class FakeScheduler(Scheduler):
    """Records scheduled actions instead of running them on a timer."""

    def __init__(self):
        self.calls = []

    def schedule(self, delay, action):
        self.calls.append((delay, action))

    async def run_all(self):
        calls, self.calls = self.calls, []
        for _, action in calls:
            await action()


def make_settings(**overrides):
    values = {
        "WEBHOOK_SECRET": TEST_SECRET,
        "CALLBACK_BASE_URL": "http://testserver",
        "STORAGE_CONNECT_RETRIES": 1,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings_factory():
    return make_settings


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def store():
    return InMemoryJobStore()


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def app(settings, store, scheduler):
    return create_app(settings, store=store, scheduler=scheduler)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth_headers():
    return {"x-webhook-secret": TEST_SECRET}
