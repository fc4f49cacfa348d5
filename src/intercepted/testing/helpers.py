"""Helpers for testing code built on the interceptor pipeline."""

from __future__ import annotations

import inspect
from typing import Any, Callable

from ..type_utils import MaybeAwaitable


class MockTransport:
    """
    Transport that answers every request with `handler(request)`.

    The handler may be sync or async and may raise to simulate a transport
    failure. Every request is recorded, so tests can assert whether (and with
    what) the transport was called.
    """

    def __init__(self, handler: Callable[[Any], MaybeAwaitable[Any]]):
        self._handler = handler
        self.requests: list[Any] = []
        self.closed = False

    @property
    def calls(self) -> int:
        return len(self.requests)

    async def send(self, request: Any) -> Any:
        self.requests.append(request)
        response = self._handler(request)
        if inspect.isawaitable(response):
            response = await response
        return response

    async def aclose(self) -> None:
        self.closed = True
