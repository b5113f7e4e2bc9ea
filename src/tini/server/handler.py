"""The ASGI ``http`` pipeline: scope in, exactly one response out.

Builds the ``Request`` from the scope and dispatches it. Handler
exceptions are turned into error responses at this boundary and
nowhere earlier.
"""

from tini._internal.asgi import Receive, Scope, Send
from tini.errors import HTTPError
from tini.http.request import Request
from tini.http.response import Response
from tini.routing.router import RouteTable
from tini.server.dispatch import dispatch
from tini.server.errors import handle_http_error, handle_internal_error
from tini.server.sender import send_response


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    table: RouteTable,
    debug: bool = False,
    threaded: bool = False,
) -> None:
    request = Request.from_asgi(scope, receive)

    response: Response
    try:
        response = await dispatch(request, table, threaded=threaded)
    except HTTPError as exc:
        response = handle_http_error(exc, request)
    except Exception as exc:
        response = handle_internal_error(exc, request, debug=debug)

    await send_response(response, send, head=request.method == "HEAD")
