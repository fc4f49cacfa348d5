"""
SequentialQueue - FIFO serialization of one phase function.

Each queue owns a list of pending Tasks and, while there is work, a single
drain loop running in the caller's TaskGroup. The loop runs tasks one at a
time and waits for each handler to resolve before starting the next one.
An idle queue has no running loop; enqueueing onto it starts a fresh one.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Any

import anyio
from anyio.abc import TaskGroup

from ..primitives.handler import Handler, invoke
from ..primitives.state import PipelineState
from ..type_utils import PhaseFunction

logger = logging.getLogger(__name__)


class QueueClosed(Exception):
    """Raised when enqueueing onto a closed queue, or when a task was abandoned."""
    pass


class Task:
    """
    One queued phase invocation.

    Attributes:
        fn: The phase function to call
        value: The intercepted value (request, response or error)
        handler: The Handler the phase function resolves
    """

    def __init__(self, fn: PhaseFunction, value: Any, handler: Handler):
        self.fn = fn
        self.value = value
        self.handler = handler
        self._finished = anyio.Event()
        self._result: PipelineState | None = None
        self._error: BaseException | None = None

    async def run(self, task_group: TaskGroup) -> None:
        """Invoke the phase function. Failures are stored for the task's owner."""
        try:
            self._result = await invoke(self.fn, self.value, self.handler, task_group=task_group)
        except Exception as e:
            self._error = e
        finally:
            self._finished.set()

    def abandon(self, reason: str) -> None:
        if not self._finished.is_set():
            self._error = QueueClosed(reason)
            self._finished.set()

    async def result(self) -> PipelineState:
        await self._finished.wait()
        if self._error is not None:
            raise self._error
        if self._result is None:
            raise QueueClosed("task finished without a result")
        return self._result


class SequentialQueue:
    """FIFO task queue with a lazily started drain loop."""

    def __init__(self, name: str = "queue"):
        self.name = name
        self._pending: deque[Task] = deque()
        self._drained: anyio.Event | None = None
        self._closed = False

    @property
    def is_idle(self) -> bool:
        return self._drained is None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Number of tasks waiting, including the one running."""
        return len(self._pending)

    async def enqueue(self, task: Task, *, task_group: TaskGroup) -> PipelineState:
        """
        Append `task` and wait for its outcome.

        Starts a drain loop in `task_group` if the queue is idle.
        """
        if self._closed:
            raise QueueClosed(f"{self.name} is closed")

        self._pending.append(task)
        if self._drained is None:
            self._drained = anyio.Event()
            logger.debug("%s: starting drain loop", self.name)
            task_group.start_soon(self._drain, task_group, name=f"drain:{self.name}")

        return await task.result()

    async def aclose(self) -> None:
        """Wait for the running drain loop (if any), then refuse new tasks."""
        while self._drained is not None:
            await self._drained.wait()
        self._closed = True

    async def _drain(self, task_group: TaskGroup) -> None:
        try:
            while self._pending:
                task = self._pending[0]
                try:
                    await task.run(task_group)
                finally:
                    self._pending.popleft()
        finally:
            # Only reached with work left if the loop was cancelled.
            while self._pending:
                self._pending.popleft().abandon(f"{self.name} drain loop was cancelled")
            drained, self._drained = self._drained, None
            if drained is not None:
                drained.set()
            logger.debug("%s: drain loop finished", self.name)
