"""
Shared pytest fixtures and configuration
"""

import os
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add the project root to Python path to make imports work
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set test environment variables
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["TOKEN_STORE_BACKEND"] = "memory"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["TWITTER_CLIENT_ID"] = "test-client-id"
os.environ["TWITTER_CLIENT_SECRET"] = "test-client-secret"
os.environ["TWITTER_REDIRECT_URI"] = "http://testserver/auth/callback"
os.environ["TWITTER_AUTHORIZE_URL"] = "https://twitter.test/i/oauth2/authorize"
os.environ["TWITTER_TOKEN_URL"] = "https://api.twitter.test/2/oauth2/token"
os.environ["TWITTER_API_BASE_URL"] = "https://api.twitter.test"
os.environ["TWITTER_MEDIA_UPLOAD_URL"] = "https://api.twitter.test/2/media/upload"
os.environ["TWITTER_CONSUMER_KEY"] = "test_consumer_key"
os.environ["TWITTER_CONSUMER_SECRET"] = "test_consumer_secret"
os.environ["TWITTER_OAUTH1_CALLBACK_URL"] = "http://testserver/auth/twitter/callback"

from database import Base
from auth.session_store import InMemoryTokenStore, TokenRecord, get_token_store
from auth.middleware import get_session_id
from plugins.twitter.config import get_twitter_settings

TEST_SESSION_ID = "test-session"

CannedResponse = Union[Dict[str, Any], Callable[[httpx.Request], httpx.Response]]


class MockTwitterApi:
    """
    Stand-in for the Twitter HTTP API behind an httpx.MockTransport.

    Responses are registered per (method, path); every request is recorded.
    Unregistered endpoints answer 404. Handlers given to respond_with may be
    coroutines; MockTransport awaits them on the async path.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self._responses: Dict[Tuple[str, str], CannedResponse] = {}

    def respond(self, method: str, path: str, status_code: int = 200,
                json: Any = None, text: Optional[str] = None) -> None:
        canned: Dict[str, Any] = {"status_code": status_code}
        if json is not None:
            canned["json"] = json
        if text is not None:
            canned["text"] = text
        self._responses[(method, path)] = canned

    def respond_with(self, method: str, path: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self._responses[(method, path)] = handler

    def handler(self, request: httpx.Request) -> httpx.Response:
        request.read()
        self.requests.append(request)
        canned = self._responses.get((request.method, request.url.path))
        if canned is None:
            return httpx.Response(404, json={"title": "Not Found"})
        if callable(canned):
            return canned(request)
        return httpx.Response(**canned)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]


@pytest.fixture
def mock_api() -> MockTwitterApi:
    return MockTwitterApi()


@pytest.fixture
def twitter_settings():
    return get_twitter_settings()


@pytest.fixture
def token_store() -> InMemoryTokenStore:
    return InMemoryTokenStore()


@pytest.fixture
def authenticated_store(token_store) -> InMemoryTokenStore:
    """Token store where the test session holds the bearer token tok1."""
    token_store.put(TEST_SESSION_ID, TokenRecord(access_token="tok1"))
    return token_store


@pytest.fixture(scope="function")
def test_session_factory():
    """
    In-memory SQLite database with all tables created; dropped after the test.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def patch_transport(monkeypatch, mock_api):
    """
    Make the plugin manager hand the mock transport to every httpx-based plugin.
    """
    from plugin_manager import plugin_manager
    original_create_auth_plugin = plugin_manager.create_authorization_plugin
    original_create_resource_plugin = plugin_manager.create_resource_plugin

    def create_authorization_plugin(service_name, **kwargs):
        if service_name == "twitter_oauth2":
            kwargs.setdefault("transport", mock_api.transport)
        return original_create_auth_plugin(service_name, **kwargs)

    def create_resource_plugin(service_name, **kwargs):
        if service_name == "twitter_api":
            kwargs.setdefault("transport", mock_api.transport)
        return original_create_resource_plugin(service_name, **kwargs)

    monkeypatch.setattr(plugin_manager, "create_authorization_plugin", create_authorization_plugin)
    monkeypatch.setattr(plugin_manager, "create_resource_plugin", create_resource_plugin)
    return mock_api


@pytest.fixture(scope="function")
def cookie_app(token_store, patch_transport) -> FastAPI:
    """
    App whose session id comes from the real signed session cookie.
    """
    from main import create_app

    app = create_app()
    app.dependency_overrides[get_token_store] = lambda: token_store
    return app


@pytest.fixture(scope="function")
def app(cookie_app) -> FastAPI:
    """
    App pinned to TEST_SESSION_ID so tests can seed the token store directly.
    """
    cookie_app.dependency_overrides[get_session_id] = lambda: TEST_SESSION_ID
    return cookie_app


@pytest.fixture(scope="function")
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture(scope="function")
def cookie_client(cookie_app) -> TestClient:
    return TestClient(cookie_app)
