"""
Pytest configuration and fixtures for shelf tests.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import AsyncGenerator, Generator
from unittest.mock import patch

import httpx
import pytest

from shelf.acquisition.proxies import ProxyRoute
from shelf.cache.memory import MemoryDocumentCache
from shelf.config import Settings, clear_settings_cache

DOC_URL = "https://books.example.org/grade 11/physics.pdf"
DEFAULT_URL = "https://demo.example.org/sample.pdf"

TEST_PROXIES = [
    ProxyRoute(name="first", template="https://first-proxy.example/raw?url={url}"),
    ProxyRoute(name="second", template="https://second-proxy.example/?{url}"),
]


def make_pdf(size: int = 8000, marker: bytes = b"") -> bytes:
    """Build a fake PDF payload of the given size."""
    head = b"%PDF-1.4\n" + marker
    return head + b"0" * max(size - len(head), 0)


class FakeNetwork:
    """Programmable stand-in for the internet, served through httpx.MockTransport.

    Routes map a URL to a (status, body) pair or to an exception class to
    raise. Unrouted URLs raise ConnectError. Every request URL is recorded.
    """

    def __init__(self) -> None:
        self.routes: dict[str, tuple[int, bytes] | type[Exception]] = {}
        self.calls: list[str] = []

    def route(self, url: str, status: int = 200, body: bytes = b"") -> None:
        self.routes[str(httpx.URL(url))] = (status, body)

    def fail(self, url: str, exc: type[Exception] = httpx.ConnectError) -> None:
        self.routes[str(httpx.URL(url))] = exc

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.calls.append(url)
        target = self.routes.get(url)
        if target is None:
            raise httpx.ConnectError("Connection refused", request=request)
        if isinstance(target, type):
            raise target("Simulated failure", request=request)
        status, body = target
        return httpx.Response(status, content=body)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def called(self, url: str) -> bool:
        return str(httpx.URL(url)) in self.calls

    def index(self, url: str) -> int:
        return self.calls.index(str(httpx.URL(url)))


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test outputs."""
    return tmp_path


@pytest.fixture
def network() -> FakeNetwork:
    """Provide an empty fake network."""
    return FakeNetwork()


@pytest.fixture
async def http_client(network: FakeNetwork) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Provide an httpx client wired to the fake network."""
    client = network.client()
    yield client
    await client.aclose()


@pytest.fixture
def memory_cache() -> MemoryDocumentCache:
    """Provide an empty in-memory document cache."""
    return MemoryDocumentCache()


@pytest.fixture
def mock_env_vars(temp_dir: Path) -> Generator[dict[str, str], None, None]:
    """Provide environment variables pointing every directory at temp_dir."""
    env_vars = {
        "CACHE_DIR": str(temp_dir / "cache"),
        "OUTPUT_DIR": str(temp_dir / "output"),
        "LOG_LEVEL": "DEBUG",
        "MIN_PAYLOAD_BYTES": "5000",
        "DEFAULT_DOCUMENT_URL": DEFAULT_URL,
        "JOURNAL_ENABLED": "false",
    }

    with patch.dict(os.environ, env_vars, clear=False):
        clear_settings_cache()
        yield env_vars


@pytest.fixture
def mock_settings(mock_env_vars: dict[str, str]) -> Generator[Settings, None, None]:
    """Provide a Settings instance with mock configuration."""
    from shelf.config import get_settings

    settings = get_settings()
    settings.ensure_directories()
    yield settings
    clear_settings_cache()


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Automatically reset settings cache before and after each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()
