"""Composable router and the flattened route table.

Routers are mutable during setup: routes and nested routers are
appended in call order. ``flatten()`` resolves the tree depth-first into
an immutable ``RouteTable`` and freezes every router involved.
"""

import logging
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, replace
from types import MappingProxyType

from tini._internal.types import Handler
from tini.errors import ConfigurationError
from tini.routing.pattern import compile_pattern
from tini.routing.route import Route, RouteMatch

logger = logging.getLogger("tini.routing")


@dataclass(frozen=True, slots=True)
class RouteTable:
    """Immutable per-method route lists, in dispatch order.

    Usage::

        table = router.flatten()
        for match in table.matches("GET", "/users/42"):
            ...
    """

    by_method: Mapping[str, tuple[Route, ...]]

    def candidates(self, method: str) -> tuple[Route, ...]:
        """Routes registered for *method*, in registration order."""
        return self.by_method.get(method, ())

    def matches(self, method: str, path: str) -> Iterator[RouteMatch]:
        """Yield every route matching *method* and *path*, first match first.

        Matching is lazy: routes after the one the caller stops at are
        never tested.
        """
        for route in self.candidates(method):
            found = route.matcher.match(path)
            if found is not None:
                yield RouteMatch(route=route, pathname=path, params=found.params)

    @property
    def routes(self) -> list[Route]:
        """Every route in the table, grouped by method."""
        return [route for routes in self.by_method.values() for route in routes]

    def __len__(self) -> int:
        return sum(len(routes) for routes in self.by_method.values())


class Router:
    """An ordered accumulator of routes and nested routers.

    Every route registered here gets *prefix* prepended to its pattern
    and *pre_callbacks* run before its own handlers::

        api = Router("/api/v1", require_auth)

        @api.get("/users/:id")
        def user(request):
            return {"id": request.params["id"]}

        root = Router()
        root.compose(api)
        table = root.flatten()

    Routers composed into this one also inherit its prefix and
    pre-callbacks when the tree is flattened.
    """

    __slots__ = ("_compiled", "_entries", "pre_callbacks", "prefix", "sensitive", "strict")

    def __init__(
        self,
        prefix: str = "",
        *pre_callbacks: Handler,
        sensitive: bool = False,
        strict: bool = False,
    ) -> None:
        self.prefix = prefix
        self.pre_callbacks: tuple[Handler, ...] = pre_callbacks
        self.sensitive = sensitive
        self.strict = strict
        self._entries: list[Route | Router] = []
        self._compiled = False

    # -- Registration --

    def register(self, method: str, pattern: str, handlers: tuple[Handler, ...]) -> Route:
        """Compile *pattern* under this router's prefix and append the route.

        Raises ``PatternError`` if the pattern is malformed and
        ``RuntimeError`` once the router has been flattened.
        """
        self._check_not_compiled()
        if not handlers:
            msg = f"Route {method} {pattern!r} needs at least one handler."
            raise TypeError(msg)

        path = f"{self.prefix}{pattern}"
        route = Route(
            method=method,
            path=path,
            matcher=compile_pattern(path, sensitive=self.sensitive, strict=self.strict),
            handlers=(*self.pre_callbacks, *handlers),
            sensitive=self.sensitive,
            strict=self.strict,
        )
        self._entries.append(route)
        logger.debug("registered %s %s (%d handlers)", method, path, len(route.handlers))
        return route

    def _register_or_decorate(
        self, method: str, pattern: str, handlers: tuple[Handler, ...]
    ) -> Callable[[Handler], Handler] | None:
        if handlers:
            self.register(method, pattern, handlers)
            return None

        def decorator(func: Handler) -> Handler:
            self.register(method, pattern, (func,))
            return func

        return decorator

    def get(self, pattern: str, *handlers: Handler) -> Callable[[Handler], Handler] | None:
        """Register a GET route, or return a decorator when no handler is given."""
        return self._register_or_decorate("GET", pattern, handlers)

    def post(self, pattern: str, *handlers: Handler) -> Callable[[Handler], Handler] | None:
        """Register a POST route, or return a decorator when no handler is given."""
        return self._register_or_decorate("POST", pattern, handlers)

    def put(self, pattern: str, *handlers: Handler) -> Callable[[Handler], Handler] | None:
        """Register a PUT route, or return a decorator when no handler is given."""
        return self._register_or_decorate("PUT", pattern, handlers)

    def delete(self, pattern: str, *handlers: Handler) -> Callable[[Handler], Handler] | None:
        """Register a DELETE route, or return a decorator when no handler is given."""
        return self._register_or_decorate("DELETE", pattern, handlers)

    def use(
        self, method: str, pattern: str, *handlers: Handler
    ) -> Callable[[Handler], Handler] | None:
        """Register a route for an arbitrary HTTP method.

        The method is compared to the request method exactly, so pass
        it the way clients send it (``"PATCH"``, ``"PURGE"``).
        """
        return self._register_or_decorate(method, pattern, handlers)

    def compose(self, router: "Router") -> None:
        """Nest *router* here, keeping its place in registration order."""
        self._check_not_compiled()
        if router is self:
            msg = "A router cannot be composed into itself."
            raise ValueError(msg)
        self._entries.append(router)

    # -- Flattening --

    def flatten(self) -> RouteTable:
        """Freeze this router tree and resolve it into a ``RouteTable``.

        Depth-first and order-preserving: the same sequence of
        ``register``/``compose`` calls always yields the same table.
        """
        by_method: dict[str, list[Route]] = {}
        for route in self._resolve("", (), ()):
            by_method.setdefault(route.method, []).append(route)
        table = RouteTable(
            MappingProxyType({method: tuple(routes) for method, routes in by_method.items()})
        )
        logger.debug("flattened %d routes across %d methods", len(table), len(by_method))
        return table

    def _resolve(
        self,
        outer_prefix: str,
        outer_callbacks: tuple[Handler, ...],
        ancestors: tuple["Router", ...],
    ) -> Iterator[Route]:
        """Yield routes in encounter order with ancestors' prefix and callbacks applied.

        A router may appear in several branches, but never inside itself.
        """
        if any(router is self for router in ancestors):
            msg = f"Router {self.prefix or '/'!r} is composed into itself through a nested router."
            raise ConfigurationError(msg)
        self._compiled = True
        for entry in self._entries:
            match entry:
                case Route():
                    yield _inherit(entry, outer_prefix, outer_callbacks)
                case Router():
                    yield from entry._resolve(
                        f"{outer_prefix}{self.prefix}",
                        (*outer_callbacks, *self.pre_callbacks),
                        (*ancestors, self),
                    )

    @property
    def is_compiled(self) -> bool:
        return self._compiled

    def _check_not_compiled(self) -> None:
        if self._compiled:
            msg = "Cannot add routes after compilation."
            raise RuntimeError(msg)


def _inherit(route: Route, prefix: str, callbacks: tuple[Handler, ...]) -> Route:
    """Apply an ancestor prefix and pre-callbacks to a route."""
    if not prefix and not callbacks:
        return route
    path = f"{prefix}{route.path}"
    matcher = route.matcher
    if prefix:
        matcher = compile_pattern(path, sensitive=route.sensitive, strict=route.strict)
    return replace(route, path=path, matcher=matcher, handlers=(*callbacks, *route.handlers))
