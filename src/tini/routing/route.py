"""Route and RouteMatch frozen dataclasses."""

from dataclasses import dataclass

from tini._internal.types import Handler, ParamKey
from tini.routing.pattern import CompiledPattern


@dataclass(frozen=True, slots=True)
class Route:
    """A compiled route.

    ``path`` is the full pattern including the registering router's
    prefix. ``handlers`` already carry that router's pre-callbacks in
    front of the route's own handlers.
    """

    method: str
    path: str
    matcher: CompiledPattern
    handlers: tuple[Handler, ...]
    sensitive: bool = False
    strict: bool = False


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful route match."""

    route: Route
    pathname: str
    params: dict[ParamKey, str]
