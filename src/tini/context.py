"""The request being dispatched, reachable without passing it around.

``dispatch`` sets ``request_var`` to the matched request for the length
of each route's handler chain and resets it afterwards, so helpers deep
in application code can call ``get_request()``. ``g`` is shorthand for
that request's ``state`` namespace.

``ContextVar`` values are per task under asyncio, and anyio copies the
context into worker threads, so threaded handlers see the same request.
"""

from contextvars import ContextVar
from typing import Any

from tini.http.request import Request

request_var: ContextVar[Request] = ContextVar("tini_request")


def get_request() -> Request:
    """The request whose handlers are running. ``LookupError`` outside one."""
    return request_var.get()


class _RequestGlobals:
    """Attribute proxy onto ``get_request().state``.

    Usage::

        from tini.context import g

        def load_user(request):      # pre-callback
            g.user = lookup(request.headers.get("authorization"))

        def profile(request):        # later handler, same request
            return {"name": g.user.name}
    """

    __slots__ = ()

    def __getattr__(self, name: str) -> Any:
        return getattr(get_request().state, name)

    def __setattr__(self, name: str, value: Any) -> None:
        setattr(get_request().state, name, value)

    def __delattr__(self, name: str) -> None:
        delattr(get_request().state, name)

    def __contains__(self, name: str) -> bool:
        return name in get_request().state

    def get(self, name: str, default: Any = None) -> Any:
        return get_request().state.get(name, default)

    def __repr__(self) -> str:
        try:
            state = get_request().state
        except LookupError:
            return "<g (no request)>"
        return f"<g {state!r}>"


g = _RequestGlobals()
