"""
Handler - the one-shot continuation given to every phase function.

A phase function reports exactly one decision through its Handler:
  - proceed(value): hand the (possibly replaced) value to the next handler
  - fail(error, propagate=...): stop with an error
  - short_circuit(response, propagate=...): stop with a response

The pipeline awaits the decision through invoke(), not the function itself:
work done after the decision does not hold up the request.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any

import anyio
from anyio.abc import TaskGroup

from .action import Action, Phase
from .state import PipelineState
from ..type_utils import PhaseFunction

logger = logging.getLogger(__name__)


class HandlerError(Exception):
    """Convenience error type for handlers that reject a request or response."""
    pass


class ProtocolViolation(RuntimeError):
    """A phase function broke the handler contract. Never routed to error handlers."""
    pass


class HandlerAlreadyResolved(ProtocolViolation):
    """Raised when a handler is resolved a second time."""
    pass


class HandlerNotResolved(ProtocolViolation):
    """Raised when a phase function returns without reporting a decision."""
    pass


_PHASE_FIELD: dict[Phase, str] = {
    Phase.REQUEST: "request",
    Phase.RESPONSE: "response",
    Phase.ERROR: "error",
}

# Default `propagate` per phase when the caller does not pass one.
_FAIL_PROPAGATES: dict[Phase, bool] = {
    Phase.REQUEST: False,
    Phase.RESPONSE: False,
    Phase.ERROR: True,
}

_SHORT_CIRCUIT_PROPAGATES: dict[Phase, bool] = {
    Phase.REQUEST: False,
    Phase.RESPONSE: True,
    Phase.ERROR: False,
}


class Handler:
    """
    Write-once continuation for a single phase invocation.

    The handler is created from the pipeline's current state and resolves to a
    new PipelineState; the original state is never touched.
    """

    def __init__(self, phase: Phase, state: PipelineState):
        self._phase = phase
        self._state = state
        self._outcome: PipelineState | None = None
        self._done = anyio.Event()

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def state(self) -> PipelineState:
        """State the handler was created from."""
        return self._state

    @property
    def request(self) -> Any:
        return self._state.request

    @property
    def response(self) -> Any:
        """
        Last response seen. In the error phase this is the response that was
        being handled when the failure happened, or None if the transport was
        not reached or failed.
        """
        return self._state.response

    @property
    def error(self) -> BaseException | None:
        return self._state.error

    @property
    def resolved(self) -> bool:
        return self._outcome is not None

    @property
    def outcome(self) -> PipelineState | None:
        return self._outcome

    def proceed(self, value: Any) -> None:
        """Pass `value` on to the next handler of this phase."""
        field = _PHASE_FIELD[self._phase]
        if self._phase is Phase.ERROR:
            _check_error(value)
        self._resolve(self._state.evolve(**{field: value, "action": Action.CONTINUE}))

    def fail(self, error: BaseException, *, propagate: bool | None = None) -> None:
        """
        Stop the current phase with `error`.

        With propagate=False the error is raised to the caller right away and
        no error handler runs. With propagate=True the error phase takes over
        (or, in the error phase, the next error handler sees `error`).
        Defaults to True in the error phase and False elsewhere.
        """
        _check_error(error)
        if propagate is None:
            propagate = _FAIL_PROPAGATES[self._phase]
        action = Action.FAIL_CONTINUE if propagate else Action.FAIL
        self._resolve(self._state.evolve(error=error, action=action))

    def short_circuit(self, response: Any, *, propagate: bool | None = None) -> None:
        """
        Finish with `response`.

        In the request phase the transport is skipped. With propagate=True the
        response handlers still run, seeded with `response`. Defaults to True
        in the response phase and False elsewhere. In the error phase the
        pipeline ends with `response` either way.
        """
        if propagate is None:
            propagate = _SHORT_CIRCUIT_PROPAGATES[self._phase]
        action = Action.SHORT_CIRCUIT_CONTINUE if propagate else Action.SHORT_CIRCUIT
        self._resolve(self._state.evolve(response=response, action=action))

    async def wait(self) -> PipelineState:
        """Wait for the decision and return the resulting state."""
        await self._done.wait()
        assert self._outcome is not None
        return self._outcome

    def _resolve(self, outcome: PipelineState) -> None:
        if self._outcome is not None:
            raise HandlerAlreadyResolved(
                f"{self._phase.value} handler already resolved with {self._outcome.action.name}"
            )
        self._outcome = outcome
        self._done.set()

    def __repr__(self) -> str:
        status = self._outcome.action.name if self._outcome is not None else "pending"
        return f"Handler({self._phase.value}, {status})"


def _check_error(error: Any) -> None:
    if not isinstance(error, BaseException):
        raise ProtocolViolation(f"errors must be exceptions, got {type(error).__name__}")


async def _first_of(*events: anyio.Event) -> None:
    async with anyio.create_task_group() as tg:
        async def wait(event: anyio.Event) -> None:
            await event.wait()
            tg.cancel_scope.cancel()

        for event in events:
            tg.start_soon(wait, event)


async def invoke(
    fn: PhaseFunction,
    value: Any,
    handler: Handler,
    *,
    task_group: TaskGroup,
) -> PipelineState:
    """
    Run one phase function and return the state its handler resolved to.

    The function runs in `task_group` and may keep working after it resolved
    its handler; invoke() returns as soon as the decision is made.

    An exception raised before the handler resolved counts as
    handler.fail(exc, propagate=True). A ProtocolViolation raised before the
    decision was returned is re-raised here; one raised later is re-raised in
    `task_group`.
    """
    returned = anyio.Event()
    delivered = False
    violations: list[ProtocolViolation] = []

    async def run() -> None:
        try:
            result = fn(value, handler)
            if inspect.isawaitable(result):
                await result
        except ProtocolViolation as e:
            if delivered:
                raise
            violations.append(e)
        except Exception as exc:
            if handler.resolved:
                logger.warning(
                    "%s handler raised after resolving; keeping %s",
                    handler.phase.value,
                    handler.outcome.action.name,  # type: ignore[union-attr]
                    exc_info=exc,
                )
            else:
                logger.debug("%s handler raised %r, treating as failure", handler.phase.value, exc)
                handler.fail(exc, propagate=True)
        finally:
            returned.set()

    task_group.start_soon(run, name=f"{handler.phase.value}:{getattr(fn, '__qualname__', fn)!s}")
    await _first_of(handler._done, returned)

    if violations:
        raise violations[0]
    if not handler.resolved:
        raise HandlerNotResolved(
            f"{getattr(fn, '__qualname__', fn)!s} returned without resolving its {handler.phase.value} handler"
        )
    delivered = True
    return await handler.wait()
