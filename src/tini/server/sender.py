"""Emit a tini Response as the two ASGI http.response messages."""

from tini._internal.asgi import Send
from tini.http.response import Response

# Statuses whose responses never carry a message body
_BODYLESS = frozenset({204, 304})


def _encode(response: Response, body: bytes) -> list[tuple[bytes, bytes]]:
    headers = [
        (name.lower().encode("latin-1"), value.encode("latin-1"))
        for name, value in response.header_items
    ]
    headers.append((b"content-length", str(len(body)).encode("latin-1")))
    return headers


async def send_response(response: Response, send: Send, *, head: bool = False) -> None:
    """Send *response* through ASGI ``send``.

    ``head=True`` keeps the headers, including the real content-length,
    and sends an empty body.
    """
    status = response.status
    body = b"" if status < 200 or status in _BODYLESS else response.body_bytes
    await send({"type": "http.response.start", "status": status, "headers": _encode(response, body)})
    await send({"type": "http.response.body", "body": b"" if head else body})
