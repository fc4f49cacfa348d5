"""Interceptors for the request, response and error phases."""

from .base import Interceptor
from .sequential import SequentialInterceptor

__all__ = [
    "Interceptor",
    "SequentialInterceptor",
]
