"""Shared fixtures: fake model, fake webhook, app factory."""

from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from main import create_app
from settings import Settings

WEBHOOK_URL = "https://hooks.example.com/leads"


class FakeCompletion:
    """Stands in for services.openai_client.chat_completion."""

    def __init__(self, reply: Optional[str] = "Hello from the assistant.", error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    def __call__(self, **kwargs) -> Optional[str]:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.reply


class FakeNotifier:
    """Records webhook deliveries instead of sending them."""

    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def __call__(self, url, notification, timeout=10.0, client=None) -> bool:
        self.calls.append({"url": url, "notification": notification, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return True


def make_settings(**overrides) -> Settings:
    values = {
        "OPENAI_API_KEY": "sk-test",
        "LEAD_WEBHOOK_URL": None,
        "ALLOWED_ORIGINS": "",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def completion() -> FakeCompletion:
    return FakeCompletion()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def make_client(completion, notifier):
    """Build a TestClient around an app with the given settings overrides."""

    def _make(**overrides) -> TestClient:
        app = create_app(make_settings(**overrides), completion=completion, notifier=notifier)
        return TestClient(app)

    return _make


@pytest.fixture
def client(make_client) -> TestClient:
    return make_client()
