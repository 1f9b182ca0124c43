"""Shared test fixtures."""

import json

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from onramp_notify.api.middleware.rate_limit import limiter
from onramp_notify.config import settings
from onramp_notify.push.dispatcher import NotificationDispatcher
from onramp_notify.push.expo import ExpoPushClient
from onramp_notify.push.pending import InMemoryPendingStore
from onramp_notify.push.token_store import InMemoryTokenStore

WEBHOOK_SECRET = "whsec_test_secret"
EXPO_URL = "https://exp.host/--/api/v2/push/send"


class RelayRecorder:
    """Records Expo relay requests and replies with a configurable response."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.body: dict = {"data": {"status": "ok", "id": "ticket-1"}}
        self.error: Exception | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, json=self.body)

    @property
    def messages(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests]


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture
def webhook_secret(monkeypatch):
    """Enable signature verification with a known secret."""
    monkeypatch.setattr(settings, "webhook_secret", WEBHOOK_SECRET)
    return WEBHOOK_SECRET


@pytest.fixture
def relay():
    return RelayRecorder()


@pytest.fixture
async def relay_http_client(relay):
    async with httpx.AsyncClient(transport=httpx.MockTransport(relay)) as http_client:
        yield http_client


@pytest.fixture
def token_store():
    return InMemoryTokenStore()


@pytest.fixture
def pending_store():
    return InMemoryPendingStore()


@pytest.fixture
def dispatcher(relay_http_client):
    return NotificationDispatcher(expo=ExpoPushClient(relay_http_client, EXPO_URL))


@pytest.fixture
def app(token_store, pending_store, dispatcher):
    """Create a test application with in-memory stores and a mocked relay."""
    from onramp_notify.main import create_app

    _app = create_app()
    _app.state.token_store = token_store
    _app.state.pending_store = pending_store
    _app.state.dispatcher = dispatcher
    _app.state.redis = None
    return _app


@pytest.fixture
async def client(app):
    """Async HTTP test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
