"""Shared type aliases used across tini modules."""

from collections.abc import Awaitable, Callable
from typing import Any, TypeAlias

# Route handler: receives the request, returns a response value,
# an awaitable of one, or None to continue with the next handler
Handler: TypeAlias = Callable[..., Any | Awaitable[Any]]

# Parameter key: names for ``:name`` parameters, positions for bare ``(regex)``
ParamKey: TypeAlias = str | int
