"""HTTP request context.

One ``Request`` is built per incoming request and never shared. The
dispatcher derives a matched copy per candidate route with
``pathname``, ``params`` and ``query`` filled in; ``state`` is the
same object across all of them so middleware can hand data to later
handlers.
"""

from __future__ import annotations

import json as json_module
from collections.abc import AsyncGenerator
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any
from urllib.parse import quote, urlsplit

from tini._internal.asgi import Receive, Scope
from tini._internal.types import ParamKey
from tini.http.headers import Headers
from tini.http.query import QUERY_SAFE, QueryParams

if TYPE_CHECKING:
    from tini.routing.route import RouteMatch

# Characters left as-is when re-encoding a decoded ASGI path
_PATH_SAFE = "/:@!$&'()*+,;="
# raw_path is already encoded: keep its escapes, escape raw non-ASCII bytes
_RAW_PATH_SAFE = _PATH_SAFE + "%"
# A Host value must not be able to add path, query or fragment to the URL
_HOST_SAFE = ":[]"


class State:
    """A mutable attribute namespace scoped to one request.

    Usage::

        def load_user(request):
            request.state.user = lookup(request.headers.get("authorization"))

        def profile(request):
            return {"name": request.state.user.name}
    """

    __slots__ = ("_data",)

    def __init__(self, **values: Any) -> None:
        object.__setattr__(self, "_data", dict(values))

    def __getattr__(self, name: str) -> Any:
        try:
            return self._data[name]
        except KeyError:
            msg = f"request state has no attribute {name!r}"
            raise AttributeError(msg) from None

    def __setattr__(self, name: str, value: Any) -> None:
        self._data[name] = value

    def __delattr__(self, name: str) -> None:
        try:
            del self._data[name]
        except KeyError:
            msg = f"request state has no attribute {name!r}"
            raise AttributeError(msg) from None

    def __contains__(self, name: str) -> bool:
        return name in self._data

    def get(self, name: str, default: Any = None) -> Any:
        """Get an attribute with a default value."""
        return self._data.get(name, default)

    def __repr__(self) -> str:
        return f"<State {self._data!r}>"


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request context.

    ``pathname``, ``params`` and ``query`` stay empty until a route
    matches; ``matched()`` returns the populated copy handlers receive.
    Body is read asynchronously via ``.body()``, ``.text()``, ``.json()``.
    """

    method: str
    url: str
    headers: Headers = field(default_factory=Headers)
    pathname: str = ""
    params: dict[ParamKey, str] = field(default_factory=dict)
    query: dict[str, str | list[str]] = field(default_factory=dict)
    state: State = field(default_factory=State)

    # Percent-encoded path and query taken straight from the ASGI scope.
    # None means derive them from ``url``.
    _path: str | None = field(default=None, repr=False)
    _query_string: str | None = field(default=None, repr=False)

    # ASGI receive, consumed by stream()
    _receive: Receive | None = field(default=None, repr=False, compare=False)

    # Shared by every matched copy, so the body is read once per request
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    # -- URL parts --

    @property
    def path(self) -> str:
        """The URL path, still percent-encoded. Never empty.

        Routes match against this, never against a re-parse of ``url``
        for requests built by ``from_asgi``.
        """
        if self._path is not None:
            return self._path or "/"
        return urlsplit(self.url).path or "/"

    @property
    def query_string(self) -> str:
        if self._query_string is not None:
            return self._query_string
        return urlsplit(self.url).query

    @property
    def query_params(self) -> QueryParams:
        """Multi-value view of the query string."""
        return QueryParams(self.query_string)

    @property
    def content_type(self) -> str | None:
        """The Content-Type header value."""
        return self.headers.get("content-type")

    def matched(self, match: RouteMatch) -> Request:
        """Copy of this request with the route match applied."""
        return replace(
            self,
            pathname=match.pathname,
            params=dict(match.params),
            query=self.query_params.collapse(),
        )

    # -- Body --

    async def stream(self) -> AsyncGenerator[bytes]:
        """Yield body chunks straight from ASGI ``receive``, once."""
        if self._receive is None:
            return
        more = True
        while more:
            message = await self._receive()
            more = message.get("more_body", False)
            if chunk := message.get("body", b""):
                yield chunk

    async def body(self) -> bytes:
        """The whole body. Read on first call, then served from the shared cache."""
        cached = self._cache.get("body")
        if cached is None:
            cached = self._cache["body"] = b"".join([chunk async for chunk in self.stream()])
        return cached

    async def text(self, encoding: str = "utf-8") -> str:
        return (await self.body()).decode(encoding)

    async def json(self) -> Any:
        """Decode the body as JSON; errors from ``json.loads`` propagate."""
        return json_module.loads(await self.body())

    # -- Factory --

    @classmethod
    def from_asgi(cls, scope: Scope, receive: Receive) -> Request:
        """Create a Request from an ASGI scope and receive callable.

        Path and query stay percent-encoded (from ``raw_path`` when the
        server provides it), so parameters are decoded exactly once.
        Raw non-ASCII bytes are escaped as UTF-8. The ``Host`` header
        only ever contributes to ``url``.
        """
        headers = Headers.from_raw(scope.get("headers", ()))
        raw_path = scope.get("raw_path")
        if raw_path:
            path = quote(raw_path.split(b"?", 1)[0], safe=_RAW_PATH_SAFE)
        else:
            path = quote(scope.get("path", "/"), safe=_PATH_SAFE)
        query_string = quote(scope.get("query_string", b""), safe=QUERY_SAFE)

        host = headers.get("host")
        if host is None:
            server = scope.get("server")
            host = f"{server[0]}:{server[1]}" if server else "localhost"
        url = f"{scope.get('scheme', 'http')}://{quote(host, safe=_HOST_SAFE)}{path}"
        if query_string:
            url = f"{url}?{query_string}"

        return cls(
            method=scope["method"],
            url=url,
            headers=headers,
            _path=path,
            _query_string=query_string,
            _receive=receive,
        )
