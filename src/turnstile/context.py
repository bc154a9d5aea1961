"""Per-request context.

``RequestContext`` is what middleware receives: the request, the shared
config, a ``state`` dict for handing data to the handler, and a response
slot. The dispatcher also publishes the current context through a
``ContextVar`` so handlers can reach it without taking a parameter:

- ``get_request()``: the current ``Request``
- ``get_context()``: the current ``RequestContext``
- ``get_claims()``: verified token claims stored by ``AuthMiddleware``

``ContextVar`` is task-local under asyncio, so concurrent requests never
see each other's context. Outside a request each getter raises ``LookupError``.
"""

from contextvars import ContextVar
from typing import Any

from turnstile.config import AppConfig
from turnstile.http.request import Request
from turnstile.http.response import Response

CLAIMS_KEY = "claims"


class RequestContext:
    """Mutable per-request state shared by middleware and the handler.

    A middleware that halts the chain must call ``respond()`` first.
    """

    __slots__ = ("config", "datastore", "request", "response", "state")

    def __init__(self, request: Request, config: AppConfig, datastore: Any = None) -> None:
        self.request = request
        self.config = config
        self.datastore = datastore
        self.state: dict[str, Any] = {}
        self.response: Response | None = None

    def respond(self, response: Response) -> None:
        """Set the response to send. A later call replaces an earlier one."""
        self.response = response

    @property
    def responded(self) -> bool:
        return self.response is not None

    @property
    def claims(self) -> dict[str, Any] | None:
        return self.state.get(CLAIMS_KEY)

    def __repr__(self) -> str:
        return f"<RequestContext {self.request.method} {self.request.path}>"


context_var: ContextVar[RequestContext] = ContextVar("turnstile_context")
"""The current request context. Set by the dispatcher, reset after each request."""


def get_context() -> RequestContext:
    """Return the current request context.

    Raises ``LookupError`` if called outside a request.
    """
    return context_var.get()


def get_request() -> Request:
    """Return the current request.

    Raises ``LookupError`` if called outside a request.
    """
    return context_var.get().request


def get_claims() -> dict[str, Any] | None:
    """Claims of the verified bearer token, or ``None`` on unauthenticated routes."""
    return context_var.get().claims
