"""Ordered middleware execution with short-circuit.

Runs each identifier in order. The first false result stops the chain.
An identifier with no implementation stops the chain with a 500; it is
never skipped, so a typo in a route's middleware list cannot silently
disable a check.
"""

from collections.abc import Iterable

from turnstile._internal.invoke import invoke
from turnstile.context import RequestContext
from turnstile.diagnostics import Diagnostics
from turnstile.errors import MiddlewareResolutionFailure
from turnstile.http.response import error
from turnstile.middleware.protocol import Resolver

INTERNAL_ERROR = "Internal server error"


async def run_chain(
    identifiers: Iterable[str],
    resolve: Resolver,
    context: RequestContext,
    *,
    diagnostics: Diagnostics,
) -> bool:
    """Run the middleware named by *identifiers* against *context*.

    Returns ``True`` when every middleware allowed the request through.
    On ``False`` the context always holds a response to send.
    """
    request = context.request
    for identifier in identifiers:
        try:
            middleware = resolve(identifier)
        except MiddlewareResolutionFailure as exc:
            diagnostics.emit("middleware.unresolved", request=request, middleware=exc.identifier)
            context.respond(error(INTERNAL_ERROR, 500))
            return False

        if not await invoke(middleware.handle, context):
            diagnostics.emit("middleware.blocked", request=request, middleware=identifier)
            if not context.responded:
                # Halted without responding: nothing sensible to send but a 500
                context.respond(error(INTERNAL_ERROR, 500))
            return False
    return True
