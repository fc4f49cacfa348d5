"""The intercepted HTTP client."""

from .base import InterceptedClient, Stage

__all__ = [
    "InterceptedClient",
    "Stage",
]
