"""Dispatch engine: first matching route whose handler chain answers wins.

Per request::

    method lookup -> route scan -> handler chain -> response
                         ^               |
                         +-- fall through (every handler returned None)

Routes are tried strictly in table order; a later route is only tested
once every earlier match has fallen through. Exhausting the table
yields the canonical 404.
"""

import logging

from tini._internal.invoke import invoke
from tini.context import request_var
from tini.http.request import Request
from tini.http.response import Response, not_found
from tini.routing.router import RouteTable
from tini.server.negotiation import negotiate

logger = logging.getLogger("tini.server")


async def dispatch(request: Request, table: RouteTable, *, threaded: bool = False) -> Response:
    """Resolve *request* against *table* and return exactly one Response.

    Each handler of the matched route runs in order and is awaited
    before the next starts. The first non-``None`` result becomes the
    response. Handler exceptions propagate to the caller.
    """
    for match in table.matches(request.method, request.path):
        matched = request.matched(match)
        token = request_var.set(matched)
        try:
            for handler in match.route.handlers:
                result = await invoke(handler, matched, threaded=threaded)
                if result is not None:
                    return negotiate(result)
        finally:
            request_var.reset(token)
        logger.debug("%s %s fell through %s", request.method, request.path, match.route.path)

    logger.debug("404 %s %s", request.method, request.path)
    return not_found()
