"""
InterceptedClient - runs every request through the interceptor pipeline.

Stages for one request:
  REQUEST(i) -> TRANSPORT -> RESPONSE(i) -> DONE
with any failure that propagates going to ERROR(i), which ends in DONE
(an error handler recovered) or FAILED (the error is raised to the caller).

The client is an async context manager. Its TaskGroup hosts the drain loops
of sequential interceptors; closing the client waits for them.
"""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack
from enum import Enum, auto
from typing import Any, Sequence

import anyio
import httpx
from anyio.abc import TaskGroup
from typing_extensions import Self

from ..http.transport import HttpxTransport, Transport
from ..interceptor.base import Interceptor
from ..primitives.action import Action, Phase
from ..primitives.handler import Handler, ProtocolViolation
from ..primitives.state import PipelineState

logger = logging.getLogger(__name__)


class Stage(Enum):
    """Pipeline stages."""
    REQUEST = auto()
    TRANSPORT = auto()
    RESPONSE = auto()
    ERROR = auto()
    DONE = auto()
    FAILED = auto()


class InterceptedClient:
    """
    HTTP client whose requests, responses and errors pass through interceptors.

    Interceptors run in registration order in every phase.

    Usage:
        async with InterceptedClient(interceptors=[...]) as client:
            response = await client.get("https://example.org")
    """

    def __init__(
        self,
        interceptors: Sequence[Interceptor] | None = None,
        transport: Transport | None = None,
    ):
        self._interceptors: tuple[Interceptor, ...] = tuple(interceptors or ())
        self._owns_transport = transport is None
        self._transport: Transport = transport if transport is not None else HttpxTransport()
        self._task_group: TaskGroup | None = None
        self._exit_stack: AsyncExitStack | None = None
        self._closed = False

    @property
    def interceptors(self) -> tuple[Interceptor, ...]:
        return self._interceptors

    @property
    def transport(self) -> Transport:
        return self._transport

    # --- Lifecycle ---

    async def __aenter__(self) -> Self:
        if self._closed:
            raise RuntimeError("Client is closed")
        if self._exit_stack is not None:
            raise RuntimeError("Client already started")
        stack = AsyncExitStack()
        if self._owns_transport:
            stack.push_async_callback(self._transport.aclose)
        self._task_group = await stack.enter_async_context(anyio.create_task_group())
        stack.push_async_callback(self._close_interceptors)
        self._exit_stack = stack
        return self

    async def __aexit__(self, *exc_info: Any) -> bool | None:
        return await self._shutdown(*exc_info)

    async def aclose(self) -> None:
        await self._shutdown(None, None, None)

    async def _shutdown(self, *exc_info: Any) -> bool | None:
        stack, self._exit_stack = self._exit_stack, None
        if stack is None:
            return None
        self._closed = True
        try:
            return await stack.__aexit__(*exc_info)
        finally:
            self._task_group = None

    async def _close_interceptors(self) -> None:
        for interceptor in self._interceptors:
            await interceptor.aclose()

    # --- Pipeline ---

    async def send(self, request: Any) -> Any:
        """
        Send `request` through the pipeline.

        Returns the response the pipeline settled on, as produced (not buffered),
        or raises the error the last relevant handler decided on.
        """
        if self._task_group is None:
            raise RuntimeError("Client not started; use 'async with InterceptedClient(...)'")

        state = PipelineState(request=request)
        stage = Stage.REQUEST
        while True:
            logger.debug("%s -> %s", stage.name, state.action.name)
            match stage:
                case Stage.REQUEST:
                    state, stage = await self._request_phase(state)
                case Stage.TRANSPORT:
                    state, stage = await self._send_transport(state)
                case Stage.RESPONSE:
                    state, stage = await self._response_phase(state)
                case Stage.ERROR:
                    state, stage = await self._error_phase(state)
                case Stage.DONE:
                    return state.response
                case Stage.FAILED:
                    assert state.error is not None
                    raise state.error

    async def _request_phase(self, state: PipelineState) -> tuple[PipelineState, Stage]:
        for interceptor in self._interceptors:
            state = await self._intercept(interceptor, Phase.REQUEST, state.request, state)
            match state.action:
                case Action.CONTINUE:
                    continue
                case Action.SHORT_CIRCUIT:
                    return state, Stage.DONE
                case Action.SHORT_CIRCUIT_CONTINUE:
                    return state, Stage.RESPONSE
                case Action.FAIL:
                    return state, Stage.FAILED
                case Action.FAIL_CONTINUE:
                    return state, Stage.ERROR
                case _:
                    raise ProtocolViolation(f"unexpected action {state.action!r} in request phase")
        return state, Stage.TRANSPORT

    async def _send_transport(self, state: PipelineState) -> tuple[PipelineState, Stage]:
        try:
            response = await self._transport.send(state.request)
        except Exception as e:
            logger.debug("transport failed: %r", e)
            return state.evolve(error=e, action=Action.FAIL_CONTINUE), Stage.ERROR
        return PipelineState(request=state.request, response=response), Stage.RESPONSE

    async def _response_phase(self, state: PipelineState) -> tuple[PipelineState, Stage]:
        for interceptor in self._interceptors:
            state = await self._intercept(interceptor, Phase.RESPONSE, state.response, state)
            match state.action:
                case Action.CONTINUE | Action.SHORT_CIRCUIT_CONTINUE:
                    continue
                case Action.SHORT_CIRCUIT:
                    return state, Stage.DONE
                case Action.FAIL:
                    return state, Stage.FAILED
                case Action.FAIL_CONTINUE:
                    return state, Stage.ERROR
                case _:
                    raise ProtocolViolation(f"unexpected action {state.action!r} in response phase")
        return state, Stage.DONE

    async def _error_phase(self, state: PipelineState) -> tuple[PipelineState, Stage]:
        for interceptor in self._interceptors:
            state = await self._intercept(interceptor, Phase.ERROR, state.error, state)
            match state.action:
                case Action.CONTINUE | Action.FAIL_CONTINUE:
                    continue
                case Action.SHORT_CIRCUIT | Action.SHORT_CIRCUIT_CONTINUE:
                    return state, Stage.DONE
                case Action.FAIL:
                    return state, Stage.FAILED
                case _:
                    raise ProtocolViolation(f"unexpected action {state.action!r} in error phase")
        return state, Stage.FAILED

    async def _intercept(
        self,
        interceptor: Interceptor,
        phase: Phase,
        value: Any,
        state: PipelineState,
    ) -> PipelineState:
        assert self._task_group is not None
        handler = Handler(phase, state)
        return await interceptor.intercept(phase, value, handler, task_group=self._task_group)

    # --- Convenience verbs ---

    async def request(self, method: str, url: httpx.URL | str, **kwargs: Any) -> httpx.Response:
        """
        Build an `httpx.Request`, send it and return the buffered response.

        Keyword arguments are those of `httpx.Request` (params, headers,
        cookies, content, data, files, json).
        """
        response = await self.send(httpx.Request(method, url, **kwargs))
        await response.aread()
        return response

    async def get(self, url: httpx.URL | str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def head(self, url: httpx.URL | str, **kwargs: Any) -> httpx.Response:
        return await self.request("HEAD", url, **kwargs)

    async def options(self, url: httpx.URL | str, **kwargs: Any) -> httpx.Response:
        return await self.request("OPTIONS", url, **kwargs)

    async def post(self, url: httpx.URL | str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    async def put(self, url: httpx.URL | str, **kwargs: Any) -> httpx.Response:
        return await self.request("PUT", url, **kwargs)

    async def patch(self, url: httpx.URL | str, **kwargs: Any) -> httpx.Response:
        return await self.request("PATCH", url, **kwargs)

    async def delete(self, url: httpx.URL | str, **kwargs: Any) -> httpx.Response:
        return await self.request("DELETE", url, **kwargs)
