"""Core primitives: phases, actions, pipeline state and handlers."""

from .action import Action, Phase
from .state import PipelineState
from .handler import (
    Handler,
    HandlerAlreadyResolved,
    HandlerError,
    HandlerNotResolved,
    ProtocolViolation,
    invoke,
)

__all__ = [
    "Action",
    "Phase",
    "PipelineState",
    "Handler",
    "HandlerError",
    "ProtocolViolation",
    "HandlerAlreadyResolved",
    "HandlerNotResolved",
    "invoke",
]
