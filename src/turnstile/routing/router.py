"""Ordered route table with first-match-wins resolution.

Routes are kept per HTTP method in registration order. Matching walks that
list and stops at the first pattern that fits, so an earlier, broader
pattern shadows a later, more specific one. There is no specificity sort.

Registering the same ``(method, pattern)`` twice replaces the first route
in place; the later registration wins but keeps the earlier position.
"""

from collections.abc import Iterator

from turnstile.errors import ConfigurationError, RouteNotFound
from turnstile.routing.matcher import compile_pattern, match, normalize_path
from turnstile.routing.route import Route, RouteMatch

METHODS: tuple[str, ...] = ("GET", "POST", "PUT", "DELETE")


class Router:
    """Route table keyed by method.

    Usage::

        router = Router()
        router.add(Route("GET", "/users/{id}", show))
        router.compile()
        found = router.match("GET", "/users/42")   # found.params == ("42",)
    """

    __slots__ = ("_compiled", "_index", "_table")

    def __init__(self) -> None:
        self._table: dict[str, list[Route]] = {}
        # (method, pattern) -> position in self._table[method]
        self._index: dict[tuple[str, str], int] = {}
        self._compiled = False

    def add(self, route: Route) -> Route:
        """Add *route*, compiling its pattern. Must be called before ``compile()``.

        Returns the stored route (with its compiled matcher attached).
        """
        if self._compiled:
            msg = "Cannot add routes after compilation."
            raise RuntimeError(msg)

        method = route.method.upper()
        if method not in METHODS:
            msg = (
                f"Unsupported method {route.method!r} for {route.pattern!r}; "
                f"use one of {METHODS}."
            )
            raise ConfigurationError(msg)

        stored = Route(
            method=method,
            pattern=route.pattern,
            handler=route.handler,
            middleware=tuple(route.middleware),
            matcher=compile_pattern(route.pattern),
        )
        routes = self._table.setdefault(method, [])
        position = self._index.get(stored.key)
        if position is None:
            self._index[stored.key] = len(routes)
            routes.append(stored)
        else:
            routes[position] = stored
        return stored

    def compile(self) -> None:
        """Freeze the table. No more routes can be added."""
        self._compiled = True

    @property
    def compiled(self) -> bool:
        return self._compiled

    @property
    def routes(self) -> list[Route]:
        """All routes, grouped by method in ``METHODS`` order, each in registration order."""
        return [route for method in METHODS for route in self._table.get(method, ())]

    def __iter__(self) -> Iterator[Route]:
        return iter(self.routes)

    def __len__(self) -> int:
        return len(self._index)

    def resolve(self, method: str, path: str) -> RouteMatch | None:
        """Return the first matching route for *method* and *path*, or ``None``."""
        normalized = normalize_path(path)
        for route in self._table.get(method.upper(), ()):
            assert route.matcher is not None
            params = match(route.matcher, normalized)
            if params is not None:
                return RouteMatch(route=route, params=tuple(params))
        return None

    def match(self, method: str, path: str) -> RouteMatch:
        """Like ``resolve()`` but raises ``RouteNotFound`` when nothing matches."""
        found = self.resolve(method, path)
        if found is None:
            raise RouteNotFound(method, path)
        return found
