"""
Interceptor - the unit of extension.

Override any of:
  - on_request(request, handler)
  - on_response(response, handler)
  - on_error(error, handler)

Each may be a plain method or a coroutine, and must resolve its handler.
"""

from __future__ import annotations

from typing import Any

from anyio.abc import TaskGroup
from typing_extensions import Self

from ..primitives.action import Phase
from ..primitives.handler import Handler, invoke
from ..primitives.state import PipelineState
from ..type_utils import PhaseFunction


class Interceptor:
    """
    Base interceptor. Every phase passes its value through unchanged by default;
    errors are handed on to the next interceptor's on_error.

    Plain interceptors impose no ordering across requests: concurrent requests
    call them concurrently.
    """

    @classmethod
    def from_handlers(
        cls,
        *,
        on_request: PhaseFunction | None = None,
        on_response: PhaseFunction | None = None,
        on_error: PhaseFunction | None = None,
    ) -> Self:
        """Build an interceptor from standalone phase functions. Missing phases keep the defaults."""
        interceptor = cls()
        if on_request is not None:
            interceptor.on_request = on_request  # type: ignore[method-assign]
        if on_response is not None:
            interceptor.on_response = on_response  # type: ignore[method-assign]
        if on_error is not None:
            interceptor.on_error = on_error  # type: ignore[method-assign]
        return interceptor

    # --- Override these ---

    def on_request(self, request: Any, handler: Handler) -> Any:
        handler.proceed(request)

    def on_response(self, response: Any, handler: Handler) -> Any:
        handler.proceed(response)

    def on_error(self, error: BaseException, handler: Handler) -> Any:
        handler.fail(error, propagate=True)

    # --- Engine entry points ---

    def phase_function(self, phase: Phase) -> PhaseFunction:
        match phase:
            case Phase.REQUEST:
                return self.on_request
            case Phase.RESPONSE:
                return self.on_response
            case Phase.ERROR:
                return self.on_error

    async def intercept(
        self,
        phase: Phase,
        value: Any,
        handler: Handler,
        *,
        task_group: TaskGroup,
    ) -> PipelineState:
        """Run the phase function for `phase` and return the handler's outcome."""
        return await invoke(self.phase_function(phase), value, handler, task_group=task_group)

    async def aclose(self) -> None:
        """Release resources held by the interceptor."""
        return None

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"
