"""HTTP primitives: Request, Response, headers, envelope helpers."""

from turnstile.http.headers import Headers
from turnstile.http.request import Request
from turnstile.http.response import Response, error, json_response, resolve_status, success

__all__ = [
    "Headers",
    "Request",
    "Response",
    "error",
    "json_response",
    "resolve_status",
    "success",
]
