"""The response type handlers return, or that coercion builds for them.

``Response`` is frozen; every ``with_*`` call hands back a modified
copy, so a shared base response can be specialised per route safely::

    base = Response(status=403).with_header("Cache-Control", "no-store")
    return base.with_header("X-Reason", "banned")
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace

TEXT_PLAIN = "text/plain; charset=utf-8"


@dataclass(frozen=True, slots=True)
class Response:
    """Status, body and headers of one HTTP reply.

    ``content_type`` is sent as the ``Content-Type`` header unless
    ``headers`` already carries one; set it to ``None`` to send none.
    """

    body: str | bytes = ""
    status: int = 200
    content_type: str | None = TEXT_PLAIN
    headers: tuple[tuple[str, str], ...] = ()

    def with_status(self, status: int) -> Response:
        return replace(self, status=status)

    def with_content_type(self, content_type: str | None) -> Response:
        return replace(self, content_type=content_type)

    def with_header(self, name: str, value: str) -> Response:
        """Copy with one more header; repeated names are kept, not replaced."""
        return self._extend(((name, value),))

    def with_headers(self, headers: Mapping[str, str]) -> Response:
        return self._extend(headers.items())

    def _extend(self, pairs: Iterable[tuple[str, str]]) -> Response:
        return replace(self, headers=self.headers + tuple(pairs))

    # -- Reading --

    def header(self, name: str) -> str | None:
        """First value of header *name* (case-insensitive), including Content-Type."""
        wanted = name.lower()
        found = next((value for key, value in self.headers if key.lower() == wanted), None)
        if found is None and wanted == "content-type":
            return self.content_type
        return found

    @property
    def header_items(self) -> list[tuple[str, str]]:
        """Headers as they go on the wire, ``content_type`` first when it applies."""
        explicit = any(key.lower() == "content-type" for key, _ in self.headers)
        if self.content_type is None or explicit:
            return list(self.headers)
        return [("Content-Type", self.content_type), *self.headers]

    @property
    def body_bytes(self) -> bytes:
        body = self.body
        return body.encode("utf-8") if isinstance(body, str) else body

    @property
    def text(self) -> str:
        body = self.body
        return body.decode("utf-8") if isinstance(body, bytes) else body


def not_found() -> Response:
    """The canonical reply when no route answered: 404 with body ``Not Found``."""
    return Response(body="Not Found", status=404)
