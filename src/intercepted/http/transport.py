"""Transports: the collaborator that actually sends a request.

A transport is anything with `async send(request) -> response` and
`async aclose()`. The default one wraps an `httpx.AsyncClient`.

Responses come back streamed (body not read yet); the client buffers them
only when handing them to the caller of a convenience verb.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

import httpx

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """The transport failed to produce a response.

    The underlying library exception is available as `__cause__`.
    """

    def __init__(self, message: str, *, request: Any = None):
        super().__init__(message)
        self.request = request


@runtime_checkable
class Transport(Protocol):
    async def send(self, request: Any) -> Any: ...

    async def aclose(self) -> None: ...


class HttpxTransport:
    """Transport backed by `httpx.AsyncClient`.

    Keyword arguments are forwarded to `httpx.AsyncClient` when no client is
    given (timeout, follow_redirects, headers, transport, ...). A client passed
    in stays owned by the caller and is not closed by aclose().
    """

    def __init__(self, client: httpx.AsyncClient | None = None, **client_kwargs: Any):
        if client is not None and client_kwargs:
            raise ValueError("pass either an httpx.AsyncClient or client keyword arguments, not both")
        self._owns_client = client is None
        self._client = client if client is not None else httpx.AsyncClient(**client_kwargs)

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client

    async def send(self, request: httpx.Request) -> httpx.Response:
        logger.debug("%s %s", request.method, request.url)
        try:
            return await self._client.send(request, stream=True)
        except httpx.HTTPError as e:
            raise TransportError(f"{request.method} {request.url} failed: {e}", request=request) from e

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
