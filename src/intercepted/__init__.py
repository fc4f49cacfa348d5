"""Interceptor pipelines for async HTTP clients."""

from .primitives.action import Action, Phase
from .primitives.state import PipelineState
from .primitives.handler import (
    Handler,
    HandlerError,
    ProtocolViolation,
    HandlerAlreadyResolved,
    HandlerNotResolved,
)
from .queue.sequential import SequentialQueue, Task, QueueClosed
from .interceptor.base import Interceptor
from .interceptor.sequential import SequentialInterceptor
from .client.base import InterceptedClient, Stage
from .http.transport import Transport, HttpxTransport, TransportError

__all__ = [
    # Core primitives
    "Action",
    "Phase",
    "PipelineState",
    "Handler",
    # Errors
    "HandlerError",
    "ProtocolViolation",
    "HandlerAlreadyResolved",
    "HandlerNotResolved",
    "QueueClosed",
    "TransportError",
    # Queues
    "SequentialQueue",
    "Task",
    # Interceptors
    "Interceptor",
    "SequentialInterceptor",
    # Client
    "InterceptedClient",
    "Stage",
    # Transports
    "Transport",
    "HttpxTransport",
]
