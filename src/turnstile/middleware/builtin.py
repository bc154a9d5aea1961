"""Built-in middleware: request logging."""

import logging

from turnstile.context import RequestContext

logger = logging.getLogger("turnstile.access")


class RequestLoggingMiddleware:
    """Log method, path, client address and user agent at INFO. Never halts.

    Usage::

        app.add_middleware(RequestLoggingMiddleware())
    """

    __slots__ = ()

    def handle(self, context: RequestContext) -> bool:
        request = context.request
        client = request.client[0] if request.client else "-"
        logger.info(
            "Request %s %s from %s (%s)",
            request.method,
            request.url,
            client,
            request.headers.get("user-agent", "unknown"),
        )
        return True
