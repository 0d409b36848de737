"""Fixtures for the HTTP and WebSocket surface."""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from multichat.api.main import create_app
from multichat.services.multichat import MultiChatService


@pytest.fixture
def service(test_settings):
    service = MultiChatService(test_settings)
    # Adapters are never started from API tests
    service.launched = []
    service._launch = service.launched.append
    return service


@pytest.fixture
def app(test_settings, service):
    return create_app(settings=test_settings, service=service)


@pytest_asyncio.fixture
async def async_client(app):
    """Create async HTTP client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
