"""Shared test fixtures."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from voice_converter.app import app
from voice_converter.config import Credentials, Settings, get_settings
from voice_converter.services import reset_services
from voice_converter.slack.client import SlackClient


class FakeTaskQueue:
    """Records scheduled tasks instead of running timers."""

    def __init__(self):
        self.scheduled: list[tuple[str, float, dict]] = []
        self.cancelled: list[str] = []

    def schedule(self, task_id: str, delay: float, payload: dict) -> None:
        self.scheduled.append((task_id, delay, payload))

    def cancel(self, task_id: str) -> bool:
        self.cancelled.append(task_id)
        return True

    def cancel_all(self) -> int:
        return 0


class FakeClock:
    """Manually advanced timer for TTL caches."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_settings(**overrides) -> Settings:
    """Settings isolated from the environment and any .env file."""
    values = {"slack_bot_token": "xoxb-test", "slack_user_token": "xoxp-test"}
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture(autouse=True)
def _reset_state():
    """Ensure clean singleton state for every test."""
    get_settings.cache_clear()
    reset_services()
    yield
    reset_services()
    get_settings.cache_clear()


@pytest.fixture(scope="session")
def client() -> TestClient:
    """Create a TestClient for the FastAPI app."""
    return TestClient(app)


@pytest.fixture
def fake_queue() -> FakeTaskQueue:
    return FakeTaskQueue()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def slack() -> SlackClient:
    """SlackClient whose method calls are all AsyncMocks."""
    mock = MagicMock(spec=SlackClient)
    for name in (
        "get_file_info",
        "get_full_transcription",
        "get_channel_info",
        "download_file",
        "post_message",
        "delete_message",
        "delete_file",
        "auth_test",
    ):
        setattr(mock, name, AsyncMock())
    return mock


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(bot_token="xoxb-test", privileged_token="xoxp-test")


@pytest.fixture(name="make_settings")
def make_settings_fixture():
    """Factory for environment-isolated Settings."""
    return make_settings
