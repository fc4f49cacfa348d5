"""Tests for Handler and invoke()."""

from __future__ import annotations

import anyio
import httpx
import pytest

from intercepted import (
    Action,
    Handler,
    HandlerAlreadyResolved,
    HandlerError,
    HandlerNotResolved,
    Phase,
    PipelineState,
    ProtocolViolation,
)
from intercepted.primitives.handler import invoke


pytestmark = pytest.mark.anyio


def make_state(**changes) -> PipelineState:
    return PipelineState(request=httpx.Request("GET", "http://localhost")).evolve(**changes)


class TestHandler:
    """Test the decision surface."""

    async def test_proceed_replaces_phase_value(self):
        state = make_state()
        new_request = httpx.Request("POST", "http://localhost/other")

        handler = Handler(Phase.REQUEST, state)
        handler.proceed(new_request)

        assert handler.resolved
        assert handler.outcome.request is new_request
        assert handler.outcome.action is Action.CONTINUE
        # copy-on-write: the original snapshot is untouched
        assert state.request is not new_request

    async def test_proceed_in_response_phase_sets_response(self):
        response = httpx.Response(204)
        handler = Handler(Phase.RESPONSE, make_state(response=httpx.Response(200)))
        handler.proceed(response)
        assert handler.outcome.response is response

    async def test_proceed_in_error_phase_requires_exception(self):
        handler = Handler(Phase.ERROR, make_state(error=HandlerError("x")))
        with pytest.raises(ProtocolViolation, match="errors must be exceptions"):
            handler.proceed("not an exception")
        assert not handler.resolved

    @pytest.mark.parametrize(
        ("propagate", "action"),
        [(False, Action.FAIL), (True, Action.FAIL_CONTINUE)],
    )
    async def test_fail_actions(self, propagate, action):
        error = HandlerError("nope")
        handler = Handler(Phase.REQUEST, make_state())
        handler.fail(error, propagate=propagate)
        assert handler.outcome.error is error
        assert handler.outcome.action is action

    @pytest.mark.parametrize(
        ("propagate", "action"),
        [(False, Action.SHORT_CIRCUIT), (True, Action.SHORT_CIRCUIT_CONTINUE)],
    )
    async def test_short_circuit_actions(self, propagate, action):
        response = httpx.Response(201)
        handler = Handler(Phase.REQUEST, make_state())
        handler.short_circuit(response, propagate=propagate)
        assert handler.outcome.response is response
        assert handler.outcome.action is action

    @pytest.mark.parametrize(
        ("phase", "action"),
        [
            (Phase.REQUEST, Action.FAIL),
            (Phase.RESPONSE, Action.FAIL),
            (Phase.ERROR, Action.FAIL_CONTINUE),
        ],
    )
    async def test_fail_default_depends_on_phase(self, phase, action):
        handler = Handler(phase, make_state(response=httpx.Response(200), error=HandlerError("x")))
        handler.fail(HandlerError("replaced"))
        assert handler.outcome.action is action

    @pytest.mark.parametrize(
        ("phase", "action"),
        [
            (Phase.REQUEST, Action.SHORT_CIRCUIT),
            (Phase.RESPONSE, Action.SHORT_CIRCUIT_CONTINUE),
            (Phase.ERROR, Action.SHORT_CIRCUIT),
        ],
    )
    async def test_short_circuit_default_depends_on_phase(self, phase, action):
        handler = Handler(phase, make_state(response=httpx.Response(200), error=HandlerError("x")))
        handler.short_circuit(httpx.Response(203))
        assert handler.outcome.action is action
        assert handler.outcome.response.status_code == 203

    async def test_second_resolution_is_rejected(self):
        handler = Handler(Phase.REQUEST, make_state())
        handler.proceed(handler.request)

        with pytest.raises(HandlerAlreadyResolved, match="already resolved with CONTINUE"):
            handler.short_circuit(httpx.Response(200))
        assert handler.outcome.action is Action.CONTINUE

    async def test_accessors_expose_state(self):
        error = HandlerError("boom")
        response = httpx.Response(500)
        handler = Handler(Phase.ERROR, make_state(response=response, error=error))

        assert handler.phase is Phase.ERROR
        assert handler.response is response
        assert handler.error is error
        assert handler.request.method == "GET"
        assert "pending" in repr(handler)

    async def test_action_helpers(self):
        assert Action.FAIL.failed and Action.FAIL_CONTINUE.failed
        assert Action.SHORT_CIRCUIT.resolved and Action.SHORT_CIRCUIT_CONTINUE.resolved
        assert not Action.CONTINUE.resolved
        assert Action.FAIL_CONTINUE.propagates
        assert not Action.FAIL.propagates
        assert not Action.SHORT_CIRCUIT.propagates


async def test_wait_returns_outcome_once_resolved():
    handler = Handler(Phase.REQUEST, make_state())

    async def resolve_later():
        await anyio.sleep(0.01)
        handler.proceed(handler.request)

    async with anyio.create_task_group() as tg:
        tg.start_soon(resolve_later)
        with anyio.fail_after(1):
            outcome = await handler.wait()

    assert outcome.action is Action.CONTINUE


async def test_invoke_runs_sync_and_async_phase_functions():
    def sync_fn(request, handler):
        handler.proceed(request)

    async def async_fn(request, handler):
        await anyio.sleep(0.01)
        handler.short_circuit(httpx.Response(201))

    async with anyio.create_task_group() as tg:
        outcome = await invoke(sync_fn, "req", Handler(Phase.REQUEST, make_state()), task_group=tg)
        assert outcome.action is Action.CONTINUE
        assert outcome.request == "req"

        outcome = await invoke(async_fn, "req", Handler(Phase.REQUEST, make_state()), task_group=tg)
        assert outcome.action is Action.SHORT_CIRCUIT
        assert outcome.response.status_code == 201


async def test_invoke_returns_on_decision_while_function_keeps_running():
    finished = anyio.Event()

    async def proceed_then_work(request, handler):
        handler.proceed(request)
        await anyio.sleep(0.2)
        finished.set()

    async with anyio.create_task_group() as tg:
        with anyio.fail_after(0.1):
            outcome = await invoke(
                proceed_then_work, "req", Handler(Phase.REQUEST, make_state()), task_group=tg
            )
        assert outcome.action is Action.CONTINUE
        assert not finished.is_set()

    # the task group waited for the rest of the function
    assert finished.is_set()


async def test_invoke_turns_raised_exception_into_propagating_failure():
    error = ValueError("bad header")

    def raising(request, handler):
        raise error

    async with anyio.create_task_group() as tg:
        outcome = await invoke(raising, "req", Handler(Phase.REQUEST, make_state()), task_group=tg)
    assert outcome.action is Action.FAIL_CONTINUE
    assert outcome.error is error


async def test_invoke_keeps_decision_when_raising_after_resolution():
    def resolve_then_raise(request, handler):
        handler.proceed(request)
        raise RuntimeError("late")

    async with anyio.create_task_group() as tg:
        outcome = await invoke(
            resolve_then_raise, "req", Handler(Phase.REQUEST, make_state()), task_group=tg
        )
    assert outcome.action is Action.CONTINUE


async def test_invoke_reraises_protocol_violations():
    def double(request, handler):
        handler.proceed(request)
        handler.proceed(request)

    async with anyio.create_task_group() as tg:
        with pytest.raises(HandlerAlreadyResolved):
            await invoke(double, "req", Handler(Phase.REQUEST, make_state()), task_group=tg)


async def test_invoke_requires_a_decision():
    def forgetful(request, handler):
        return None

    async with anyio.create_task_group() as tg:
        with pytest.raises(HandlerNotResolved, match="forgetful"):
            await invoke(forgetful, "req", Handler(Phase.REQUEST, make_state()), task_group=tg)
