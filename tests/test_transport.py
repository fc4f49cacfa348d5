"""Tests for transports."""

from __future__ import annotations

import httpx
import pytest

from intercepted import HttpxTransport, InterceptedClient, Interceptor, Transport, TransportError
from intercepted.testing import MockTransport

pytestmark = pytest.mark.anyio


def echo(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, headers={"x-path": request.url.path}, text=request.method)


async def test_httpx_transport_sends_streamed_requests():
    transport = HttpxTransport(transport=httpx.MockTransport(echo))
    try:
        response = await transport.send(httpx.Request("GET", "http://example.org/ping"))
        body = await response.aread()
    finally:
        await transport.aclose()

    assert response.status_code == 200
    assert response.headers["x-path"] == "/ping"
    assert body == b"GET"


async def test_httpx_transport_wraps_httpx_errors():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    transport = HttpxTransport(transport=httpx.MockTransport(refuse))
    request = httpx.Request("GET", "http://example.org/")
    try:
        with pytest.raises(TransportError, match="connection refused") as exc_info:
            await transport.send(request)
    finally:
        await transport.aclose()

    assert exc_info.value.request is request
    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


async def test_httpx_transport_leaves_given_client_open():
    client = httpx.AsyncClient(transport=httpx.MockTransport(echo))
    transport = HttpxTransport(client)
    await transport.aclose()

    assert not client.is_closed
    await client.aclose()


def test_httpx_transport_rejects_client_and_kwargs():
    with pytest.raises(ValueError, match="not both"):
        HttpxTransport(httpx.AsyncClient(), timeout=5)


def test_transports_satisfy_protocol():
    assert isinstance(HttpxTransport(), Transport)
    assert isinstance(MockTransport(echo), Transport)


async def test_client_returns_buffered_response_from_verbs():
    seen = []

    def observe(response, handler):
        seen.append(response.status_code)
        handler.proceed(response)

    transport = HttpxTransport(transport=httpx.MockTransport(echo))
    async with InterceptedClient(
        interceptors=[Interceptor.from_handlers(on_response=observe)],
        transport=transport,
    ) as client:
        response = await client.post("http://example.org/echo")
    await transport.aclose()

    assert seen == [200]
    assert response.content == b"POST"
