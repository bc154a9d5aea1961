"""Turnstile exception hierarchy.

Shared across the router, dispatcher, middleware, and controllers so every
module raises and catches the same types. Token codec errors live next to
the codec in ``turnstile.security.tokens``.
"""

from dataclasses import dataclass, field
from typing import Any


class TurnstileError(Exception):
    """Base for all turnstile-specific errors."""


class ConfigurationError(TurnstileError):
    """Raised when app configuration or route-table setup is invalid.

    Raised at startup so a misconfigured app refuses to start.
    """


@dataclass(frozen=True, slots=True, eq=False)
class HTTPError(TurnstileError):
    """An error that maps directly to an error envelope with a status code.

    Raised by the router, middleware, or handlers. The dispatcher's error
    boundary turns it into ``{"success": false, "message": detail, "data": data}``.
    """

    status: int
    detail: str = ""
    data: Any = None
    headers: tuple[tuple[str, str], ...] = field(default=())

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class BadRequest(HTTPError):  # noqa: N818
    """400: the request body could not be understood."""

    def __init__(self, detail: str = "Bad request") -> None:
        super().__init__(status=400, detail=detail)


class Unauthorized(HTTPError):  # noqa: N818
    """401: missing or rejected credentials."""

    def __init__(self, detail: str = "Unauthorized") -> None:
        super().__init__(
            status=401,
            detail=detail,
            headers=(("WWW-Authenticate", "Bearer"),),
        )


class NotFound(HTTPError):  # noqa: N818
    """404: the requested thing does not exist."""

    def __init__(self, detail: str = "Not found") -> None:
        super().__init__(status=404, detail=detail)


class RouteNotFound(NotFound):
    """404: no registered route matches the request method and path."""

    def __init__(self, method: str = "", path: str = "") -> None:
        super().__init__("Route not found")
        # The frozen dataclass __setattr__ rejects subclass attributes; these
        # stay outside the fields and never reach the client.
        object.__setattr__(self, "method", method)
        object.__setattr__(self, "path", path)


class ValidationFailure(HTTPError):
    """422: one or more required fields are missing.

    ``data`` carries the per-field message map, e.g.
    ``{"email": "The email field is required"}``.
    """

    def __init__(self, errors: dict[str, str], detail: str = "Validation failed") -> None:
        super().__init__(status=422, detail=detail, data=dict(errors))

    @property
    def errors(self) -> dict[str, str]:
        return self.data


class HandlerNotFound(TurnstileError):
    """A route's controller could not be resolved from the registry."""

    def __init__(self, name: str, detail: str = "") -> None:
        self.name = name
        super().__init__(detail or f"Controller {name!r} not found")


class InvalidAction(HandlerNotFound):
    """A route action is not callable or names a missing controller method."""

    def __init__(self, name: str, method: str | None = None, detail: str = "") -> None:
        self.method = method
        if not detail:
            if method is None:
                detail = f"Invalid action type: {name!r}"
            else:
                detail = f"Method {method!r} not found in controller {name!r}"
        super().__init__(name, detail)


class MiddlewareResolutionFailure(TurnstileError):
    """A middleware identifier has no registered implementation."""

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(f"Middleware {identifier!r} not found")
