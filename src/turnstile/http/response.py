"""HTTP response and the JSON envelope every reply is wrapped in.

Responses are frozen; each ``.with_*()`` call returns a new one. Bodies
built by ``success()`` and ``error()`` always have the shape::

    {"success": bool, "message": str, "data": any}
"""

from __future__ import annotations

import json as json_module
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any

from turnstile.errors import HTTPError

JSON_CONTENT_TYPE = "application/json; charset=utf-8"

# SQLSTATE class 23: integrity constraint violation (e.g. "23000", "23505")
_INTEGRITY_CLASS = "23"


@dataclass(frozen=True, slots=True)
class Response:
    """An HTTP response built through immutable transformations."""

    body: str | bytes = ""
    status: int = 200
    content_type: str = JSON_CONTENT_TYPE
    headers: tuple[tuple[str, str], ...] = ()

    # -- Chainable transformations --

    def with_status(self, status: int) -> Response:
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> Response:
        """Return a new Response with *name* set, replacing any earlier value."""
        kept = tuple((n, v) for n, v in self.headers if n.lower() != name.lower())
        return replace(self, headers=(*kept, (name, value)))

    def with_headers(self, headers: Mapping[str, str] | tuple[tuple[str, str], ...]) -> Response:
        items = headers.items() if isinstance(headers, Mapping) else headers
        response = self
        for name, value in items:
            response = response.with_header(name, value)
        return response

    def header(self, name: str) -> str | None:
        """Return the value of header *name* (case-insensitive), or ``None``."""
        for n, v in self.headers:
            if n.lower() == name.lower():
                return v
        return None

    # -- Body helpers --

    @property
    def body_bytes(self) -> bytes:
        if isinstance(self.body, str):
            return self.body.encode("utf-8")
        return self.body

    @property
    def text(self) -> str:
        if isinstance(self.body, bytes):
            return self.body.decode("utf-8")
        return self.body

    def json(self) -> Any:
        return json_module.loads(self.body_bytes)


def resolve_status(code: int | str | None, default: int = 500) -> int:
    """Map a caller-supplied code to an HTTP status.

    - ints and numeric strings between 100 and 599 are used as is;
    - a SQLSTATE integrity-constraint code (``"23000"``, ``"23505"``) is 422;
    - anything else is *default* (500).
    """
    if isinstance(code, bool) or code is None:
        return default
    if isinstance(code, str):
        stripped = code.strip()
        if len(stripped) == 5 and stripped.startswith(_INTEGRITY_CLASS):
            return 422
        if not stripped.isdigit():
            return default
        code = int(stripped)
    if isinstance(code, int) and 100 <= code <= 599:
        return code
    return default


def json_response(payload: Any, status: int = 200) -> Response:
    body = json_module.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    return Response(body=body, status=resolve_status(status))


def success(data: Any = None, message: str = "Success", status: int = 200) -> Response:
    """A success envelope. Defaults: message ``"Success"``, status 200."""
    return json_response({"success": True, "message": message, "data": data}, status)


def error(message: str = "Error", code: int | str = 400, data: Any = None) -> Response:
    """An error envelope. Defaults: message ``"Error"``, status 400.

    *code* may be a database error code; see ``resolve_status``.
    """
    return json_response(
        {"success": False, "message": message, "data": data},
        resolve_status(code),
    )


def error_from(exc: HTTPError) -> Response:
    """The error envelope for *exc*, carrying its status, data and headers."""
    response = error(exc.detail or f"Error {exc.status}", exc.status, exc.data)
    return response.with_headers(exc.headers)
