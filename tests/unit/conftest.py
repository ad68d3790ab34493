"""Shared fixtures for unit tests.

No test touches the network: HTTP goes through ``httpx.MockTransport``
and backoff sleeps are patched out.
"""

import json
import os
from collections.abc import Callable
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from raindrop_mcp.core.config import DEFAULT_TOOLS_CONFIG, Settings
from raindrop_mcp.raindrop_client import RaindropClient
from raindrop_mcp.tool_registry import ToolRegistry


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    """Keep RAINDROP_* variables from the developer's shell out of tests."""
    for key in list(os.environ):
        if key.startswith("RAINDROP_"):
            monkeypatch.delenv(key)


@pytest.fixture
def settings() -> Settings:
    return Settings(API_TOKEN="test-token")


@pytest.fixture
def no_sleep():
    """Patch the client's backoff sleep; yields the mock to inspect delays."""
    with patch("raindrop_mcp.raindrop_client.asyncio.sleep", new_callable=AsyncMock) as sleep:
        yield sleep


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.requests: list[httpx.Request] = []

        def record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(record)

    def json_bodies(self) -> list[dict | None]:
        return [json.loads(r.content) if r.content else None for r in self.requests]


@pytest.fixture
def make_client(settings) -> Callable[..., tuple[RaindropClient, RecordingTransport]]:
    """Build a client whose HTTP calls are answered by *handler*."""

    def factory(handler, **overrides):
        effective = settings.model_copy(update=overrides) if overrides else settings
        transport = RecordingTransport(handler)
        return RaindropClient(effective, transport=transport), transport

    return factory


@pytest.fixture
def packaged_registry() -> ToolRegistry:
    """Registry loaded from the packaged tool catalogue."""
    return ToolRegistry(DEFAULT_TOOLS_CONFIG)
