"""Shared fixtures."""

from __future__ import annotations

import httpx
import pytest

from intercepted.testing import MockTransport


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def echo_transport() -> MockTransport:
    """Transport answering 200 with an empty body to every request."""
    return MockTransport(lambda request: httpx.Response(200, request=request))
