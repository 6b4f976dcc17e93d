"""Test configuration and fixtures."""

import os

import aiohttp
import pytest
import pytest_asyncio

from registry_api_v2_puller.core.types import ImageReference, RegistryConfig
from tests.helpers import FakeRegistry, start_registry

PROXY_VARIABLES = [
    "HTTP_PROXY",
    "HTTPS_PROXY",
    "ALL_PROXY",
    "http_proxy",
    "https_proxy",
    "all_proxy",
]


@pytest.fixture(autouse=True)
def no_env_proxy(monkeypatch):
    """Keep environment proxies away from the local fake registry."""
    for name in PROXY_VARIABLES:
        monkeypatch.delenv(name, raising=False)


@pytest_asyncio.fixture
async def fake_registry():
    """Fake registry serving nginx:alpine for linux/amd64 with 3 layers."""
    registry = FakeRegistry()
    server = await start_registry(registry)
    yield registry
    await server.close()


@pytest_asyncio.fixture
async def multi_arch_registry():
    """Fake registry publishing linux/amd64 and linux/arm64."""
    registry = FakeRegistry(platforms=("linux/amd64", "linux/arm64"), layer_count=2)
    server = await start_registry(registry)
    yield registry
    await server.close()


@pytest.fixture
def registry_config(fake_registry):
    return RegistryConfig(url=fake_registry.base_url, timeout=30)


@pytest.fixture
def nginx():
    return ImageReference(name="nginx", tag="alpine")


@pytest_asyncio.fixture
async def session():
    async with aiohttp.ClientSession() as client_session:
        yield client_session


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless a real registry is reachable."""
    skip_integration = pytest.mark.skip(reason="Registry not available")

    for item in items:
        if (
            "integration" in item.keywords
            and os.getenv("REGISTRY_AVAILABLE", "false").lower() != "true"
        ):
            item.add_marker(skip_integration)
