"""Middleware protocol.

A middleware is any object with a ``handle(context)`` method returning a
bool, sync or async::

    class RequireJson:
        def handle(self, context: RequestContext) -> bool:
            if context.request.content_type != "application/json":
                context.respond(error("Expected JSON", 415))
                return False
            return True

No base class required. ``True`` continues the chain; a false result
halts it, and the handler never runs. A middleware that halts sets the
response with ``context.respond()`` before returning.
"""

from collections.abc import Awaitable, Callable
from typing import Protocol, runtime_checkable

from turnstile.context import RequestContext


@runtime_checkable
class Middleware(Protocol):
    """Protocol for turnstile middleware."""

    def handle(self, context: RequestContext) -> bool | Awaitable[bool]: ...


# Maps a middleware identifier to a ready-to-call instance
type Resolver = Callable[[str], Middleware]
