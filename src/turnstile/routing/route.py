"""Route, ControllerAction, and RouteMatch frozen dataclasses."""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, NamedTuple

from turnstile.routing.matcher import PathMatcher


class ControllerAction(NamedTuple):
    """A ``(controller, method)`` handler reference resolved through the registry.

    Plain ``("UserController", "show")`` tuples are accepted wherever an
    action is, and converted to this type at registration.
    """

    controller: str
    method: str

    def __str__(self) -> str:
        return f"{self.controller}.{self.method}"


type Action = Callable[..., Any] | ControllerAction


@dataclass(frozen=True, slots=True)
class Route:
    """A frozen route definition.

    Created during app setup. Identity is ``(method, pattern)``: a second
    registration of the same pair replaces this one.
    """

    method: str
    pattern: str
    handler: Action
    middleware: tuple[str, ...] = ()
    matcher: PathMatcher | None = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.method, self.pattern)

    @property
    def handler_name(self) -> str:
        if isinstance(self.handler, ControllerAction):
            return str(self.handler)
        return getattr(self.handler, "__qualname__", None) or repr(self.handler)


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful route match.

    ``params`` are the captured placeholder values in pattern order.
    """

    route: Route
    params: tuple[str, ...]
