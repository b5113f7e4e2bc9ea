"""Async test client for tini applications.

Drives the app through its ASGI interface in-process and hands back the
same ``Response`` type handlers produce, so assertions read like
handler code.
"""

from __future__ import annotations

import json as json_module
from typing import Any
from urllib.parse import unquote, urlsplit

from tini._internal.invoke import run_hooks
from tini.app import App
from tini.http.response import Response


def _encode_headers(host: str, headers: dict[str, str] | None) -> list[tuple[bytes, bytes]]:
    # A caller-supplied host replaces the one taken from the URL
    pairs = {"host": host, **{name.lower(): value for name, value in (headers or {}).items()}}
    return [(name.encode("latin-1"), value.encode("latin-1")) for name, value in pairs.items()]


class _Collector:
    """ASGI ``send`` target that rebuilds a Response from the messages."""

    __slots__ = ("body", "headers", "status")

    def __init__(self) -> None:
        self.status = 500
        self.headers: list[tuple[bytes, bytes]] = []
        self.body = bytearray()

    async def __call__(self, message: dict[str, Any]) -> None:
        match message["type"]:
            case "http.response.start":
                self.status = message["status"]
                self.headers = list(message.get("headers", ()))
            case "http.response.body":
                self.body += message.get("body", b"")

    def response(self) -> Response:
        # Content-Type goes back into its own field; content-length is derived
        content_type: str | None = None
        rest: list[tuple[str, str]] = []
        for raw_name, raw_value in self.headers:
            name, value = raw_name.decode("latin-1"), raw_value.decode("latin-1")
            if name == "content-type":
                content_type = value
            elif name != "content-length":
                rest.append((name, value))
        return Response(
            body=bytes(self.body),
            status=self.status,
            content_type=content_type,
            headers=tuple(rest),
        )


class TestClient:
    """Async test client for tini applications.

    Entering the client freezes the app and runs its startup hooks;
    leaving runs the shutdown hooks.

    Usage::

        async with TestClient(app) as client:
            response = await client.get("/users/42?full=1")
            assert response.status == 200
    """

    __test__ = False  # Not a pytest test class
    __slots__ = ("app", "base_url")

    def __init__(self, app: App, base_url: str = "http://testserver") -> None:
        self.app = app
        self.base_url = base_url

    async def __aenter__(self) -> TestClient:
        self.app._ensure_frozen()
        await run_hooks(self.app._startup_hooks)
        return self

    async def __aexit__(self, *args: object) -> None:
        await run_hooks(self.app._shutdown_hooks)

    # -- Verb shortcuts --

    async def get(self, path: str, *, headers: dict[str, str] | None = None) -> Response:
        return await self.request("GET", path, headers=headers)

    async def delete(self, path: str, *, headers: dict[str, str] | None = None) -> Response:
        return await self.request("DELETE", path, headers=headers)

    async def put(
        self, path: str, *, headers: dict[str, str] | None = None, body: bytes | None = None
    ) -> Response:
        return await self.request("PUT", path, headers=headers, body=body)

    async def post(
        self,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        body: bytes | None = None,
        json: Any = None,
    ) -> Response:
        """Send a POST request. ``json`` is encoded and labelled as JSON."""
        if json is not None:
            body = json_module.dumps(json).encode("utf-8")
            headers = {"content-type": "application/json", **(headers or {})}
        return await self.request("POST", path, headers=headers, body=body)

    # -- Core --

    async def request(
        self,
        method: str,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        body: bytes | None = None,
    ) -> Response:
        """Send one request through the app's ASGI callable.

        *path* may be a bare path (``/a?b=1``) or an absolute URL. The
        method is sent exactly as given and the path stays
        percent-encoded in ``raw_path``. Non-ASCII characters are
        sent as raw UTF-8, the way a lenient client would.
        """
        url = urlsplit(path if "://" in path else f"{self.base_url}{path}")
        target = url.path or "/"
        scope: dict[str, Any] = {
            "type": "http",
            "asgi": {"version": "3.0"},
            "http_version": "1.1",
            "method": method,
            "scheme": url.scheme,
            "path": unquote(target),
            "raw_path": target.encode("utf-8"),
            "query_string": url.query.encode("utf-8"),
            "root_path": "",
            "headers": _encode_headers(url.netloc, headers),
            "server": (url.hostname or "testserver", url.port or 80),
            "client": ("127.0.0.1", 0),
        }

        pending = [{"type": "http.request", "body": body or b"", "more_body": False}]

        async def receive() -> dict[str, Any]:
            return pending.pop(0) if pending else {"type": "http.disconnect"}

        collector = _Collector()
        await self.app(scope, receive, collector)
        return collector.response()
