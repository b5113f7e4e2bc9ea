"""Response coercion: maps handler return values to Response objects.

Handlers return one of a closed set of shapes; ``negotiate`` resolves
each with a single ``match``. ``None`` is never coerced: it is the
continuation sentinel the dispatcher checks first.
"""

import json as json_module
from typing import Any

from tini.http.response import Response

JSON_CONTENT_TYPE = "application/json"


def negotiate(value: Any) -> Response:
    """Convert a route handler's return value to a Response.

    Dispatch order:

    1. ``Response``          -> pass through untouched
    2. ``str``               -> 200, text/plain
    3. ``bytes``             -> 200, application/octet-stream
    4. anything else         -> 200, compact JSON, ``Content-Type: application/json``

    Values ``json`` cannot encode raise ``TypeError``, which the ASGI
    adapter reports as a 500.
    """
    match value:
        case None:
            msg = "None means 'continue to the next handler' and cannot be sent as a response."
            raise TypeError(msg)
        case Response():
            return value
        case str():
            return Response(body=value)
        case bytes() | bytearray():
            return Response(body=bytes(value), content_type="application/octet-stream")
        case _:
            body = json_module.dumps(value, separators=(",", ":"), ensure_ascii=False)
            return Response(body=body, content_type=JSON_CONTENT_TYPE)
