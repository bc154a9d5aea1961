"""Turnstile application class.

Mutable during setup (routes, middleware, controllers). Frozen when the
first request is dispatched; registering anything after that raises
``RuntimeError``.
"""

import inspect
import logging
import os
import sys
import threading
from collections.abc import Callable, Iterable, Mapping
from dataclasses import replace
from datetime import datetime, timezone, tzinfo
from typing import Any, BinaryIO
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import anyio

from turnstile._internal.asgi import Receive, Scope, Send
from turnstile.config import AppConfig
from turnstile.diagnostics import Diagnostics
from turnstile.errors import ConfigurationError
from turnstile.http.request import Request
from turnstile.http.response import Response
from turnstile.logs import configure_logging
from turnstile.registry import Registry
from turnstile.routing.route import Action, ControllerAction, Route
from turnstile.routing.router import Router
from turnstile.server.cgi import request_from_cgi, write_cgi_response
from turnstile.server.handler import dispatch, handle_asgi

logger = logging.getLogger("turnstile.app")

type RouteSetup = Callable[["App"], Any]


def _action(handler: Any) -> Action:
    """Accept ``("UserController", "show")`` pairs as controller actions."""
    if isinstance(handler, ControllerAction):
        return handler
    if (
        isinstance(handler, (tuple, list))
        and len(handler) == 2
        and all(isinstance(part, str) for part in handler)
    ):
        return ControllerAction(*handler)
    return handler


def _controller_name(resource: str) -> str:
    return resource[:1].upper() + resource[1:] + "Controller"


def _middleware_name(middleware: Any) -> str:
    return middleware.__name__ if isinstance(middleware, type) else type(middleware).__name__


class App:
    """The turnstile application.

    Usage::

        app = App(AppConfig(token_secret="s3cr3t"))
        app.get("/", lambda: {"status": "OK"})
        app.register_controller("UserController", UserController)
        app.resource("user")

    Thread safety:
        Setup is single-threaded. The freeze transition uses a Lock plus a
        double check so exactly one thread compiles the route table, even
        when concurrent workers receive their first requests together.
    """

    __slots__ = (
        "_db",
        "_freeze_lock",
        "_frozen",
        "_middleware",
        "_router",
        "config",
        "diagnostics",
        "registry",
        "tz",
    )

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        routes: RouteSetup | None = None,
        datastore: Any = None,
        diagnostics: Diagnostics | None = None,
    ) -> None:
        self.config, self.tz = _resolve_timezone(config or AppConfig())
        self.diagnostics = diagnostics or Diagnostics.default()
        self.registry = Registry()
        self._router = Router()
        self._middleware: list[str] = []
        self._frozen = False
        self._freeze_lock = threading.Lock()
        self._db = self._init_datastore(datastore)

        if routes is not None:
            try:
                routes(self)
            except ConfigurationError:
                raise
            except Exception as exc:
                msg = f"Route setup failed: {exc}"
                raise ConfigurationError(msg) from exc

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        *,
        env_file: str | None = ".env",
        routes: RouteSetup | None = None,
        datastore: Any = None,
        diagnostics: Diagnostics | None = None,
        **overrides: Any,
    ) -> "App":
        """Build an app from environment variables (and ``.env``), with logging configured."""
        config, tz = _resolve_timezone(AppConfig.from_env(environ, env_file=env_file, **overrides))
        configure_logging(config, tz)
        return cls(config, routes=routes, datastore=datastore, diagnostics=diagnostics)

    def _init_datastore(self, datastore: Any) -> Any:
        if not self.config.db_enable:
            logger.info("Datastore initialization skipped (DB_ENABLE=false)")
            return None
        if datastore is None:
            msg = "DB_ENABLE is set but no datastore was given to App(datastore=...)"
            raise ConfigurationError(msg)
        # A class or factory function is called with the config; its errors propagate.
        if inspect.isclass(datastore) or inspect.isfunction(datastore):
            datastore = datastore(self.config)
        logger.info("Datastore initialized")
        return datastore

    @property
    def db(self) -> Any:
        """The datastore. Raises ``RuntimeError`` when none is enabled."""
        if self._db is None:
            msg = "No datastore configured. Set DB_ENABLE and pass App(datastore=...)."
            raise RuntimeError(msg)
        return self._db

    def now(self) -> datetime:
        """The current time in the app's timezone."""
        return datetime.now(self.tz)

    # -- Route registration --

    def _add(self, method: str, pattern: str, handler: Any, middleware: Iterable[str]) -> "App":
        self._check_not_frozen()
        self._router.add(Route(method, pattern, _action(handler), tuple(middleware)))
        return self

    def get(self, pattern: str, handler: Any, middleware: Iterable[str] = ()) -> "App":
        return self._add("GET", pattern, handler, middleware)

    def post(self, pattern: str, handler: Any, middleware: Iterable[str] = ()) -> "App":
        return self._add("POST", pattern, handler, middleware)

    def put(self, pattern: str, handler: Any, middleware: Iterable[str] = ()) -> "App":
        return self._add("PUT", pattern, handler, middleware)

    def delete(self, pattern: str, handler: Any, middleware: Iterable[str] = ()) -> "App":
        return self._add("DELETE", pattern, handler, middleware)

    def route(
        self,
        pattern: str,
        *,
        methods: Iterable[str] | None = None,
        middleware: Iterable[str] = (),
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Register a route handler via decorator. ``methods`` defaults to ``["GET"]``."""
        middleware = tuple(middleware)

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            for method in methods or ("GET",):
                self._add(method.upper(), pattern, func, middleware)
            return func

        return decorator

    def resource(
        self,
        name: str,
        controller: str | None = None,
        middleware: Iterable[str] = (),
    ) -> "App":
        """Register the five CRUD routes for *name*.

        ``app.resource("user")`` maps to ``UserController``::

            GET    /user        index
            GET    /user/{id}   show
            POST   /user        store
            PUT    /user/{id}   update
            DELETE /user/{id}   destroy
        """
        controller = controller or _controller_name(name)
        middleware = tuple(middleware)
        self.get(f"/{name}", (controller, "index"), middleware)
        self.get(f"/{name}/{{id}}", (controller, "show"), middleware)
        self.post(f"/{name}", (controller, "store"), middleware)
        self.put(f"/{name}/{{id}}", (controller, "update"), middleware)
        self.delete(f"/{name}/{{id}}", (controller, "destroy"), middleware)
        return self

    @property
    def routes(self) -> list[Route]:
        return self._router.routes

    # -- Middleware --

    def add_middleware(self, middleware: Any) -> "App":
        """Append a global middleware.

        Pass a registered identifier, or a middleware instance or class,
        which is registered under its class name first.
        """
        self._check_not_frozen()
        if isinstance(middleware, str):
            name = middleware
        else:
            name = _middleware_name(middleware)
            self.registry.add_middleware(name, middleware)
        self._middleware.append(name)
        return self

    def register_middleware(self, name: str, middleware: Any) -> "App":
        """Make *middleware* (class or instance) available to routes as *name*."""
        self._check_not_frozen()
        self.registry.add_middleware(name, middleware)
        return self

    @property
    def middleware(self) -> tuple[str, ...]:
        return tuple(self._middleware)

    # -- Controllers --

    def register_controller(self, name: str, controller: Any) -> "App":
        """Make *controller* (class or instance) available to routes as *name*."""
        self._check_not_frozen()
        self.registry.add_controller(name, controller)
        return self

    def controller(self, name: str | None = None) -> Callable[[type], type]:
        """Register a controller class via decorator, under *name* or its class name."""

        def decorator(cls: type) -> type:
            self.register_controller(name or cls.__name__, cls)
            return cls

        return decorator

    # -- Serving --

    async def dispatch(self, request: Request) -> Response:
        """Dispatch one request. Always returns a response."""
        self._ensure_frozen()
        return await dispatch(
            request,
            router=self._router,
            registry=self.registry,
            middleware=self.middleware,
            config=self.config,
            diagnostics=self.diagnostics,
            datastore=self._db,
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        await handle_asgi(scope, receive, send, self)

    def run(
        self,
        environ: Mapping[str, str] | None = None,
        stdin: BinaryIO | None = None,
        stdout: BinaryIO | None = None,
    ) -> Response:
        """Handle exactly one CGI request and write the reply to *stdout*."""
        environ = os.environ if environ is None else environ
        stdin = sys.stdin.buffer if stdin is None else stdin
        stdout = sys.stdout.buffer if stdout is None else stdout

        request = request_from_cgi(environ, stdin)
        response = anyio.run(self.dispatch, request)
        write_cgi_response(response, stdout)
        return response

    # -- Internal --

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Compile the route table. MUST only be called while holding _freeze_lock."""
        self._router.compile()
        for name in self._unregistered_middleware():
            # Still fails closed at request time; flag it early.
            logger.warning("Middleware %r is used but not registered", name)
        self._frozen = True

    def _unregistered_middleware(self) -> list[str]:
        names = dict.fromkeys(self._middleware)
        for route in self._router:
            names.update(dict.fromkeys(route.middleware))
        return [name for name in names if not self.registry.has_middleware(name)]

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register routes, middleware, and controllers before the first request."
            )
            raise RuntimeError(msg)


def _resolve_timezone(config: AppConfig) -> tuple[AppConfig, tzinfo]:
    """Validate the configured timezone, falling back to UTC with a warning."""
    if config.timezone.upper() == "UTC":
        return config, timezone.utc
    try:
        return config, ZoneInfo(config.timezone)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        logger.warning("Invalid timezone %r, using UTC as fallback", config.timezone)
        return replace(config, timezone="UTC"), timezone.utc
