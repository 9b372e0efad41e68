"""Shared test configuration and fixtures for all tests."""

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from llm_speedometer.models import ProviderEndpoint
from llm_speedometer.providers.credentials import CredentialStore

from .helpers import make_endpoint, make_ref


@pytest.fixture
def endpoint():
    """OpenAI-compatible endpoint fixture."""
    return make_endpoint()


@pytest.fixture
def model_ref():
    """Model reference fixture."""
    return make_ref()


@pytest_asyncio.fixture
async def fake_provider():
    """Start local aiohttp servers; yields a function that serves routes.

    Usage:
        base_url, app = await fake_provider({"/v1/chat/completions": handler})
    """
    servers = []

    async def start(routes: dict, get_routes: dict = None) -> tuple[str, web.Application]:
        app = web.Application()
        app["requests"] = []
        for path, handler in routes.items():
            app.router.add_post(path, handler)
        for path, handler in (get_routes or {}).items():
            app.router.add_get(path, handler)
        server = TestServer(app)
        await server.start_server()
        servers.append(server)
        return str(server.make_url("/")).rstrip("/"), app

    yield start

    for server in servers:
        await server.close()


@pytest.fixture
def credentials_for():
    """Build a CredentialStore from endpoints."""

    def build(*endpoints: ProviderEndpoint) -> CredentialStore:
        return CredentialStore({e.id: e for e in endpoints})

    return build
