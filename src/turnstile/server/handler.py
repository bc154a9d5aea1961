"""Request dispatch: the state machine from received request to response.

    Received -> CorsPreflightCheck -> GlobalMiddleware -> RouteResolution
             -> RouteMiddleware -> HandlerExecution -> Responded

Every exit, including errors, produces a ``Response`` with the CORS
headers set. ``handle_asgi`` is the only code here that touches raw ASGI.
"""

import logging
from collections.abc import Sequence
from typing import Any, Protocol

from turnstile._internal.asgi import Receive, Scope, Send
from turnstile._internal.invoke import accepts, invoke
from turnstile.config import AppConfig
from turnstile.context import RequestContext, context_var
from turnstile.diagnostics import Diagnostics
from turnstile.errors import HTTPError, InvalidAction, RouteNotFound
from turnstile.http.cors import PREFLIGHT_METHOD, with_cors_headers
from turnstile.http.headers import Headers
from turnstile.http.request import Request
from turnstile.http.response import Response, success
from turnstile.middleware.chain import run_chain
from turnstile.registry import Registry
from turnstile.routing.matcher import normalize_path
from turnstile.routing.route import ControllerAction, RouteMatch
from turnstile.routing.router import Router
from turnstile.server.errors import LAST_RESORT, handle_http_error, handle_internal_error
from turnstile.server.sender import send_response

logger = logging.getLogger("turnstile.server")

# Handler parameters filled by name rather than by position
INJECTABLE = ("request", "context")


def strip_base_path(path: str, base_path: str) -> str:
    """Remove *base_path* from the front of *path*, on a segment boundary.

    ``/api/users`` with base ``/api`` is ``/users``; ``/apiary`` is left alone.
    """
    base = "/" + base_path.strip("/")
    if base != "/" and (path == base or path.startswith(base + "/")):
        path = path[len(base) :]
    return normalize_path(path)


async def dispatch(
    request: Request,
    *,
    router: Router,
    registry: Registry,
    middleware: Sequence[str],
    config: AppConfig,
    diagnostics: Diagnostics,
    datastore: Any = None,
) -> Response:
    """Process one request through the full pipeline. Never raises."""
    context = RequestContext(request, config, datastore)
    token = context_var.set(context)
    try:
        response = await _run(context, router, registry, middleware, diagnostics)
    except Exception as exc:
        response = _convert_error(exc, request, config, diagnostics)
    finally:
        context_var.reset(token)
    return with_cors_headers(response, config)


def _convert_error(
    exc: Exception,
    request: Request,
    config: AppConfig,
    diagnostics: Diagnostics,
) -> Response:
    try:
        if isinstance(exc, HTTPError):
            return handle_http_error(exc, request)
        return handle_internal_error(exc, request, debug=config.debug, diagnostics=diagnostics)
    except Exception:
        logger.exception(
            "Could not convert %s for %s %s", type(exc).__name__, request.method, request.path
        )
        return LAST_RESORT


async def _run(
    context: RequestContext,
    router: Router,
    registry: Registry,
    middleware: Sequence[str],
    diagnostics: Diagnostics,
) -> Response:
    request = context.request
    diagnostics.emit("request.received", request=request)
    path = strip_base_path(request.path, context.config.base_path)

    if request.method.upper() == PREFLIGHT_METHOD:
        return success(None, "OK")

    if not await run_chain(middleware, registry.middleware, context, diagnostics=diagnostics):
        assert context.response is not None
        return context.response

    found = router.resolve(request.method, path)
    if found is None:
        diagnostics.emit("route.unmatched", request=request, resolved_path=path)
        raise RouteNotFound(request.method, path)
    diagnostics.emit(
        "route.matched",
        request=request,
        pattern=found.route.pattern,
        params=list(found.params),
    )

    route_middleware = found.route.middleware
    if route_middleware and not await run_chain(
        route_middleware, registry.middleware, context, diagnostics=diagnostics
    ):
        assert context.response is not None
        return context.response

    result = await _invoke_handler(found, context, registry)
    return negotiate(result, context)


async def _invoke_handler(found: RouteMatch, context: RequestContext, registry: Registry) -> Any:
    """Resolve the route's action and call it with the path parameters.

    Parameters are passed positionally in pattern order. ``request`` and
    ``context`` are passed by keyword when the handler names them, so they
    must follow the path parameters in its signature.
    """
    action = found.route.handler
    if isinstance(action, ControllerAction):
        controller = registry.controller(action.controller)
        target = getattr(controller, action.method, None)
        if target is None or not callable(target):
            raise InvalidAction(action.controller, action.method)
        logger.debug("Executing %s with %s", action, found.params)
    elif callable(action):
        target = action
        logger.debug("Executing %s with %s", found.route.handler_name, found.params)
    else:
        raise InvalidAction(repr(action))

    values = {"request": context.request, "context": context}
    kwargs = {name: values[name] for name in INJECTABLE if accepts(target, name)}
    return await invoke(target, *found.params, **kwargs)


def negotiate(result: Any, context: RequestContext) -> Response:
    """Convert a handler's return value to a Response.

    ==========================  ===================================
    Return value                Response
    ==========================  ===================================
    ``Response``                sent as is
    ``None`` after respond()    the response set on the context
    ``(data, status)``          success envelope with that status
    anything else               ``success(data)``
    ==========================  ===================================
    """
    if isinstance(result, Response):
        return result
    if result is None and context.response is not None:
        return context.response
    if (
        isinstance(result, tuple)
        and len(result) == 2
        and isinstance(result[1], int)
        and not isinstance(result[1], bool)
    ):
        data, status = result
        return success(data, status=status)
    return success(result)


class Dispatcher(Protocol):
    async def dispatch(self, request: Request) -> Response: ...


async def read_body(receive: Receive) -> bytes:
    """Read the full ASGI request body."""
    chunks: list[bytes] = []
    while True:
        message = await receive()
        if message["type"] == "http.disconnect":
            break
        chunks.append(message.get("body", b""))
        if not message.get("more_body", False):
            break
    return b"".join(chunks)


def request_from_asgi(scope: Scope, body: bytes) -> Request:
    client = scope.get("client")
    return Request(
        method=scope["method"].upper(),
        path=scope.get("path") or "/",
        headers=Headers(scope.get("headers", ())),
        query_string=scope.get("query_string", b"").decode("latin-1"),
        body=body,
        client=tuple(client) if client else None,
    )


async def _lifespan(receive: Receive, send: Send) -> None:
    # Nothing to start or stop; acknowledge so servers proceed.
    while True:
        message = await receive()
        if message["type"] == "lifespan.startup":
            await send({"type": "lifespan.startup.complete"})
        elif message["type"] == "lifespan.shutdown":
            await send({"type": "lifespan.shutdown.complete"})
            return


async def handle_asgi(scope: Scope, receive: Receive, send: Send, app: Dispatcher) -> None:
    """ASGI 3 entry point: read, dispatch, send."""
    if scope["type"] == "lifespan":
        await _lifespan(receive, send)
        return
    if scope["type"] != "http":
        return

    request = request_from_asgi(scope, await read_body(receive))
    response = await app.dispatch(request)
    await send_response(response, send)
