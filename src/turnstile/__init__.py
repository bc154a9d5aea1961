"""Turnstile: a minimal HTTP dispatcher with middleware and bearer-token auth.

Every reply is a JSON envelope::

    {"success": true, "message": "Success", "data": ...}

Basic usage::

    from turnstile import App, AppConfig

    app = App(AppConfig(token_secret="s3cr3t"))
    app.get("/", lambda: {"status": "OK"})
    app.get("/users/{id}", lambda id: {"id": id}, middleware=["auth"])

Serve it with any ASGI server (``uvicorn module:app``), or handle one CGI
request per process with ``app.run()``.
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "AuthMiddleware",
    "ConfigurationError",
    "Controller",
    "HTTPError",
    "Middleware",
    "NotFound",
    "Request",
    "RequestContext",
    "Response",
    "TokenCodec",
    "TurnstileError",
    "error",
    "get_claims",
    "get_context",
    "get_request",
    "success",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import turnstile`` fast while providing a clean top-level API.
    """
    if name == "App":
        from turnstile.app import App

        return App

    if name == "AppConfig":
        from turnstile.config import AppConfig

        return AppConfig

    if name == "Controller":
        from turnstile.controller import Controller

        return Controller

    if name == "Request":
        from turnstile.http.request import Request

        return Request

    if name in ("Response", "error", "success"):
        from turnstile.http import response as _resp

        return getattr(_resp, name)

    if name in ("RequestContext", "get_claims", "get_context", "get_request"):
        from turnstile import context as _ctx

        return getattr(_ctx, name)

    if name in ("AuthMiddleware", "Middleware"):
        from turnstile import middleware as _mw

        return getattr(_mw, name)

    if name == "TokenCodec":
        from turnstile.security.tokens import TokenCodec

        return TokenCodec

    if name in ("ConfigurationError", "HTTPError", "NotFound", "TurnstileError"):
        from turnstile import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
