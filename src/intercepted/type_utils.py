"""Shared typing aliases."""

from typing import Any, Awaitable, Callable, TypeAlias, TypeVar

T = TypeVar("T")

MaybeAwaitable: TypeAlias = T | Awaitable[T]

# A phase function receives the intercepted value and the Handler it must resolve.
# It may be a plain function or a coroutine function.
PhaseFunction: TypeAlias = Callable[[Any, Any], MaybeAwaitable[None]]
