"""Shared fixtures for API integration tests"""
import pytest
import httpx
from typing import AsyncGenerator, Dict

from tutorhub.api.middleware import limiter
from tutorhub.api.server import create_api_application


@pytest.fixture
def test_api_key(monkeypatch) -> str:
    """Test API key for authentication"""
    monkeypatch.setenv("API_KEYS", "test_key_123")
    return "test_key_123"


@pytest.fixture
def auth_headers(test_api_key: str) -> Dict[str, str]:
    """Valid authentication headers"""
    return {"Authorization": f"Bearer {test_api_key}"}


@pytest.fixture
def app(memory_store):
    """API application over an in-memory store"""
    limiter.reset()
    application = create_api_application(store=memory_store)
    return application


@pytest.fixture
async def api_client(app) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Async HTTP client bound to the ASGI app"""
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
        follow_redirects=True
    ) as client:
        yield client
