"""Name registry for controllers and middleware.

Routes refer to controllers and middleware by name; the registry maps
those names to implementations. A registered class is instantiated once
per lookup (so once per request); a registered instance is shared.

Lookups fail loudly: an unknown controller raises ``HandlerNotFound`` and
an unknown middleware raises ``MiddlewareResolutionFailure``. Unknown
names are never skipped.
"""

import threading
from typing import Any

from turnstile.errors import HandlerNotFound, MiddlewareResolutionFailure


def _instantiate(entry: Any) -> Any:
    return entry() if isinstance(entry, type) else entry


class Registry:
    """Controllers and middleware by name.

    Written during app setup, read during dispatch. Writes take a lock so
    a late registration from another thread cannot tear a lookup.
    """

    __slots__ = ("_controllers", "_lock", "_middleware")

    def __init__(self) -> None:
        self._controllers: dict[str, Any] = {}
        self._middleware: dict[str, Any] = {}
        self._lock = threading.Lock()

    # -- Registration --

    def add_controller(self, name: str, controller: Any) -> None:
        with self._lock:
            self._controllers[name] = controller

    def add_middleware(self, name: str, middleware: Any) -> None:
        if not isinstance(middleware, type) and not callable(getattr(middleware, "handle", None)):
            msg = f"Middleware {name!r} has no handle(context) method"
            raise TypeError(msg)
        with self._lock:
            self._middleware[name] = middleware

    # -- Lookup --

    def has_controller(self, name: str) -> bool:
        return name in self._controllers

    def has_middleware(self, name: str) -> bool:
        return name in self._middleware

    @property
    def controller_names(self) -> tuple[str, ...]:
        return tuple(self._controllers)

    @property
    def middleware_names(self) -> tuple[str, ...]:
        return tuple(self._middleware)

    def controller(self, name: str) -> Any:
        """Return a controller for *name*, instantiating registered classes."""
        try:
            entry = self._controllers[name]
        except KeyError:
            raise HandlerNotFound(name) from None
        return _instantiate(entry)

    def middleware(self, name: str) -> Any:
        """Return a middleware for *name*, instantiating registered classes."""
        try:
            entry = self._middleware[name]
        except KeyError:
            raise MiddlewareResolutionFailure(name) from None
        return _instantiate(entry)
