"""Immutable HTTP request.

Frozen metadata plus the fully read body. Transports (ASGI, CGI) read the
body before dispatch, so handlers and middleware access it synchronously.
"""

from __future__ import annotations

import json as json_module
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import parse_qsl

from turnstile.errors import BadRequest
from turnstile.http.headers import Headers


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    ``path`` is the path as received (before base-path stripping);
    the dispatcher works on its own normalized copy.
    """

    method: str
    path: str
    headers: Headers = field(default_factory=Headers)
    query_string: str = ""
    body: bytes = b""
    client: tuple[str, int] | None = None

    # Private: parsed-body cache (dict contents are mutable even though the field is frozen)
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    # -- Computed properties --

    @property
    def content_type(self) -> str | None:
        return self.headers.get("content-type")

    @property
    def query(self) -> dict[str, str]:
        """Query parameters; the first value wins for repeated keys."""
        params: dict[str, str] = {}
        for key, value in parse_qsl(self.query_string, keep_blank_values=True):
            params.setdefault(key, value)
        return params

    @property
    def url(self) -> str:
        if self.query_string:
            return f"{self.path}?{self.query_string}"
        return self.path

    @property
    def authorization(self) -> str | None:
        return self.headers.get("authorization")

    # -- Body access --

    def text(self) -> str:
        return self.body.decode("utf-8")

    def json(self) -> Any:
        """Parse the body as JSON. An empty body is ``None``.

        Raises ``BadRequest`` when the body is not valid JSON.
        """
        if "_json" in self._cache:
            return self._cache["_json"]
        if not self.body.strip():
            result = None
        else:
            try:
                result = json_module.loads(self.body)
            except ValueError:
                raise BadRequest("Invalid JSON body") from None
        self._cache["_json"] = result
        return result
