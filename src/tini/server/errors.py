"""Error handling at the transport boundary.

``dispatch`` lets handler exceptions propagate; the ASGI adapter maps
them here: ``HTTPError`` to its own status, anything else to a logged 500.
"""

import logging
import traceback
from http import HTTPStatus

from tini.errors import HTTPError
from tini.http.request import Request
from tini.http.response import Response

logger = logging.getLogger("tini.server")


def handle_http_error(exc: HTTPError, request: Request) -> Response:
    """Map an HTTPError raised by a handler to a Response."""
    logger.debug("%d %s %s: %s", exc.status, request.method, request.path, exc.detail)
    detail = exc.detail
    if not detail:
        try:
            detail = HTTPStatus(exc.status).phrase
        except ValueError:
            detail = f"Error {exc.status}"
    return Response(body=detail, status=exc.status, headers=exc.headers)


def handle_internal_error(exc: Exception, request: Request, *, debug: bool) -> Response:
    """Log *exc* with its traceback and answer 500; the body shows it only in debug."""
    logger.exception("500 %s %s", request.method, request.path, exc_info=exc)
    if debug:
        body = "".join(traceback.format_exception(exc))
        return Response(body=body, status=500)
    return Response(body="Internal Server Error", status=500)
