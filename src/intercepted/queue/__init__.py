"""Sequential task queues."""

from .sequential import QueueClosed, SequentialQueue, Task

__all__ = [
    "QueueClosed",
    "SequentialQueue",
    "Task",
]
