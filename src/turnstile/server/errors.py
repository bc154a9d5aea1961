"""Error boundary for dispatch.

Maps ``HTTPError`` exceptions and unexpected failures to error envelopes.
Each exception is converted exactly once, here; nothing upstream catches
and re-wraps.
"""

import logging
import traceback

from turnstile.diagnostics import Diagnostics
from turnstile.errors import HTTPError
from turnstile.http.request import Request
from turnstile.http.response import Response, error, error_from

logger = logging.getLogger("turnstile.server")

INTERNAL_ERROR = "Internal server error"

# Sent when converting an error fails in turn
LAST_RESORT = error(INTERNAL_ERROR, 500)


def origin(exc: BaseException) -> str:
    """``file:line`` of the frame that raised *exc*, or ``"unknown"``."""
    frames = traceback.extract_tb(exc.__traceback__)
    if not frames:
        return "unknown"
    frame = frames[-1]
    return f"{frame.filename}:{frame.lineno}"


def handle_http_error(exc: HTTPError, request: Request) -> Response:
    """Map an HTTPError to its error envelope, keeping status, data and headers."""
    logger.debug("%d %s %s: %s", exc.status, request.method, request.path, exc.detail)
    return error_from(exc)


def handle_internal_error(
    exc: Exception,
    request: Request,
    *,
    debug: bool,
    diagnostics: Diagnostics,
) -> Response:
    """Handle unexpected exceptions as 500 errors.

    The message reaches the client only in debug mode.
    """
    where = origin(exc)
    logger.error(
        "500 %s %s: %s (%s)",
        request.method,
        request.path,
        exc,
        where,
        exc_info=exc,
    )
    diagnostics.emit(
        "handler.error",
        request=request,
        error=type(exc).__name__,
        message=str(exc),
        origin=where,
    )
    if debug:
        return error(str(exc) or type(exc).__name__, 500)
    return error(INTERNAL_ERROR, 500)
