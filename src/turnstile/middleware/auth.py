"""Bearer-token authentication middleware.

Verifies the ``Authorization: Bearer <token>`` header with a ``TokenCodec``
and stores the claims in ``context.state["claims"]`` for the handler
(reachable there as ``get_claims()``). A missing or rejected token halts
the chain with a 401 envelope and ``WWW-Authenticate: Bearer``.

Usage::

    from turnstile.middleware import AuthMiddleware
    from turnstile.security import TokenCodec

    app.register_middleware("auth", AuthMiddleware(TokenCodec.from_config(app.config)))
    app.get("/me", me, middleware=["auth"])
"""

import logging

from turnstile.context import CLAIMS_KEY, RequestContext
from turnstile.errors import Unauthorized
from turnstile.http.response import error_from
from turnstile.security.tokens import MalformedToken, TokenCodec, TokenError

logger = logging.getLogger("turnstile.auth")


class AuthMiddleware:
    """Require a valid bearer token."""

    __slots__ = ("codec",)

    def __init__(self, codec: TokenCodec) -> None:
        self.codec = codec

    def handle(self, context: RequestContext) -> bool:
        token = self.codec.from_request(context.request)
        if token is None:
            context.respond(error_from(Unauthorized(MalformedToken.default_message)))
            return False

        try:
            claims = self.codec.decode(token)
        except TokenError as exc:
            logger.info(
                "Rejected token for %s %s: %s",
                context.request.method,
                context.request.path,
                type(exc).__name__,
            )
            context.respond(error_from(Unauthorized(str(exc))))
            return False

        context.state[CLAIMS_KEY] = claims
        return True
