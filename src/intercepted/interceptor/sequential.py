"""
SequentialInterceptor - an interceptor whose phases run one request at a time.

Three independent queues (request, response, error) keep the phases apart,
so slow response handling never holds up request handling for another
in-flight request.
"""

from __future__ import annotations

from typing import Any

from anyio.abc import TaskGroup
from typing_extensions import override

from ..primitives.action import Phase
from ..primitives.handler import Handler
from ..primitives.state import PipelineState
from ..queue.sequential import SequentialQueue, Task
from .base import Interceptor


class SequentialInterceptor(Interceptor):
    """
    Interceptor that serializes each phase across concurrent requests.

    Every invocation of a phase function is put on that phase's queue and only
    starts once the previous invocation's handler has resolved.
    """

    def __init__(self):
        super().__init__()
        name = self.__class__.__name__
        self._queues: dict[Phase, SequentialQueue] = {
            phase: SequentialQueue(name=f"{name}.{phase.value}") for phase in Phase
        }

    def queue(self, phase: Phase) -> SequentialQueue:
        return self._queues[phase]

    @override
    async def intercept(
        self,
        phase: Phase,
        value: Any,
        handler: Handler,
        *,
        task_group: TaskGroup,
    ) -> PipelineState:
        task = Task(self.phase_function(phase), value, handler)
        return await self._queues[phase].enqueue(task, task_group=task_group)

    @override
    async def aclose(self) -> None:
        """Close all three queues once their in-flight work is done."""
        for queue in self._queues.values():
            await queue.aclose()
