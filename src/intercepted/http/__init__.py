"""HTTP transports the pipeline sends through."""

from .transport import HttpxTransport, Transport, TransportError

__all__ = [
    "HttpxTransport",
    "Transport",
    "TransportError",
]
