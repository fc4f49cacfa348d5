"""Immutable snapshot threaded through every pipeline transition."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any

from .action import Action


@dataclass(frozen=True, slots=True)
class PipelineState:
    """
    State of one request travelling through the pipeline.

    Attributes:
        request: The request to be sent; interceptors may replace it.
        response: The current response, None until the transport answered
            or a handler short-circuited. Kept when a response handler
            fails, so during the error phase it is the last response seen.
        error: The current error, None unless something failed.
        action: The most recent decision.
    """
    request: Any
    response: Any = None
    error: BaseException | None = None
    action: Action = Action.CONTINUE

    def evolve(self, **changes: Any) -> PipelineState:
        """Return a copy with the given fields replaced."""
        return dataclasses.replace(self, **changes)
