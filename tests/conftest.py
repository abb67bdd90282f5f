# tests/conftest.py
"""
Fixtures: every test gets its own data dir and app instance.
Google is never contacted; calendar calls are replaced by fakes.
"""
import json

import pytest
import pytest_asyncio
from asgi_lifespan import LifespanManager
from httpx import ASGITransport, AsyncClient

from config import AppConfig
from main import create_app

REDIRECT_URI = "http://localhost:3000/oauth2callback"

CLIENT_SECRETS = {
    "web": {
        "client_id": "1234-test.apps.googleusercontent.com",
        "client_secret": "s3cr3t",
        "auth_uri": "https://accounts.google.com/o/oauth2/auth",
        "token_uri": "https://oauth2.googleapis.com/token",
        "redirect_uris": [REDIRECT_URI],
    }
}

STORED_TOKEN = {
    "token": "ya29.stored",
    "refresh_token": "1//refresh",
    "token_uri": "https://oauth2.googleapis.com/token",
    "client_id": "1234-test.apps.googleusercontent.com",
    "client_secret": "s3cr3t",
    "scopes": ["https://www.googleapis.com/auth/calendar.readonly"],
}


@pytest.fixture
def app_config(tmp_path) -> AppConfig:
    return AppConfig(
        DATA_DIR=tmp_path / "dados",
        STATIC_DIR=tmp_path / "public",
        GOOGLE_REDIRECT_URI=REDIRECT_URI,
        AUTHORIZATION_FLOW="web",
        TIMEZONE="America/Sao_Paulo",
        PHONE_REGION="BR",
        OPEN_BROWSER=False,
    )


@pytest.fixture
def write_credentials(app_config):
    def _write(content=CLIENT_SECRETS):
        app_config.DATA_DIR.mkdir(parents=True, exist_ok=True)
        text = content if isinstance(content, str) else json.dumps(content)
        app_config.credentials_path.write_text(text, encoding="utf-8")
    return _write


@pytest.fixture
def write_token(app_config):
    def _write(content=STORED_TOKEN):
        app_config.DATA_DIR.mkdir(parents=True, exist_ok=True)
        text = content if isinstance(content, str) else json.dumps(content)
        app_config.token_path.write_text(text, encoding="utf-8")
    return _write


@pytest.fixture
def app(app_config):
    return create_app(app_config)


@pytest_asyncio.fixture
async def async_client(app):
    async with LifespanManager(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            yield client


# -------- Calendar API fakes --------
class FakeEvents:
    def __init__(self, items=None, error=None, on_execute=None, pages=None):
        # Each execute() serves the next page; the last one repeats
        self.pages = list(pages) if pages else [{"items": items or []}]
        self.error = error
        self.on_execute = on_execute
        self.calls = []

    def list(self, **kwargs):
        self.calls.append(kwargs)
        return self

    def execute(self):
        if self.on_execute:
            self.on_execute()
        if self.error:
            raise self.error
        if len(self.pages) > 1:
            return self.pages.pop(0)
        return self.pages[0]


class FakeService:
    def __init__(self, events: FakeEvents):
        self._events = events

    def events(self):
        return self._events


@pytest.fixture
def fake_calendar(monkeypatch):
    """Patch the calendar service; returns a setter for the events fake."""
    state = {"events": FakeEvents(), "credentials": None}

    def _build(credentials):
        state["credentials"] = credentials
        return FakeService(state["events"])

    monkeypatch.setattr("services.agenda.build_calendar_service", _build)

    def _set(**kwargs):
        state["events"] = FakeEvents(**kwargs)
        return state["events"]

    _set.state = state
    return _set
