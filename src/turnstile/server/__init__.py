"""Transports and the dispatch pipeline."""

from turnstile.server.cgi import request_from_cgi, write_cgi_response
from turnstile.server.handler import dispatch, handle_asgi
from turnstile.server.sender import send_response

__all__ = [
    "dispatch",
    "handle_asgi",
    "request_from_cgi",
    "send_response",
    "write_cgi_response",
]
