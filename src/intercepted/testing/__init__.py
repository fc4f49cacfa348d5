"""Testing utilities."""

from .helpers import MockTransport

__all__ = [
    "MockTransport",
]
