"""Shared fixtures for dealbridge tests.

Provides:
- Settings pointing the project store at a per-test temporary file,
  with every credential blank (mock mode, no HubSpot enrichment)
- A FastAPI app with components wired on app.state and the queue worker
  running (the ASGI transport does not run the lifespan)
- Async HTTP client for API testing
"""

from __future__ import annotations

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.dealbridge.config import Settings
from src.dealbridge.main import create_app, init_state
from src.dealbridge.projects.store import ProjectStore


def make_settings(tmp_path, **overrides) -> Settings:
    """Settings isolated from the developer's environment and .env file."""
    defaults = {
        "PROJECTS_FILE": str(tmp_path / "projects.json"),
        "HUBSPOT_ACCESS_TOKEN": "",
        "BASECAMP_ACCESS_TOKEN": "",
        "BASECAMP_ACCOUNT_ID": "",
        "BASECAMP_CLIENT_ID": "",
        "BASECAMP_CLIENT_SECRET": "",
        "BASECAMP_REDIRECT_URI": "",
        "SENTRY_DSN": "",
    }
    defaults.update(overrides)
    return Settings(_env_file=None, **defaults)


@pytest.fixture
def settings_factory(tmp_path):
    """Build Settings with overrides on top of the isolated test defaults."""

    def _factory(**overrides) -> Settings:
        return make_settings(tmp_path, **overrides)

    return _factory


@pytest.fixture
def settings(settings_factory) -> Settings:
    return settings_factory()


@pytest.fixture
def store(settings) -> ProjectStore:
    return ProjectStore(settings.PROJECTS_FILE)


@pytest_asyncio.fixture
async def app(settings):
    """App with runtime components initialized and the queue worker running."""
    application = create_app(settings)
    init_state(application, settings)
    queue = application.state.reconciliation_queue
    queue.start()

    yield application

    await queue.stop()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing the API."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
