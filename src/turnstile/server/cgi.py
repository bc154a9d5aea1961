"""CGI transport: one request in from the environment, one response out.

Used by ``App.run()`` for single-request-per-process deployments, where
the web server execs the app for each request and reads its stdout.
"""

import logging
from collections.abc import Mapping
from http import HTTPStatus
from typing import BinaryIO
from urllib.parse import urlsplit

from turnstile.http.headers import Headers
from turnstile.http.request import Request
from turnstile.http.response import Response

logger = logging.getLogger("turnstile.server")

# CGI passes these two without the HTTP_ prefix
_UNPREFIXED = {"CONTENT_TYPE": "content-type", "CONTENT_LENGTH": "content-length"}


def _headers(environ: Mapping[str, str]) -> Headers:
    pairs: list[tuple[str, str]] = []
    for key, value in environ.items():
        if key.startswith("HTTP_"):
            pairs.append((key[5:].replace("_", "-").lower(), value))
        elif key in _UNPREFIXED and value:
            pairs.append((_UNPREFIXED[key], value))
    return Headers(pairs)


def _content_length(environ: Mapping[str, str]) -> int:
    raw = environ.get("CONTENT_LENGTH", "").strip()
    if not raw:
        return 0
    try:
        return max(int(raw), 0)
    except ValueError:
        logger.warning("Ignoring malformed CONTENT_LENGTH %r", raw)
        return 0


def _client(environ: Mapping[str, str]) -> tuple[str, int] | None:
    host = environ.get("REMOTE_ADDR")
    if not host:
        return None
    port = environ.get("REMOTE_PORT", "")
    return (host, int(port) if port.isdigit() else 0)


def request_from_cgi(environ: Mapping[str, str], stdin: BinaryIO | None = None) -> Request:
    """Build a Request from a CGI environment and body stream.

    The path comes from ``REQUEST_URI`` when the server sets it, otherwise
    ``PATH_INFO``. ``QUERY_STRING`` wins over a query in the URI.
    """
    uri = environ.get("REQUEST_URI")
    if uri:
        parts = urlsplit(uri)
        path, query = parts.path or "/", parts.query
    else:
        path, query = environ.get("PATH_INFO") or "/", ""
    query = environ.get("QUERY_STRING") or query

    length = _content_length(environ)
    body = stdin.read(length) if stdin is not None and length else b""

    return Request(
        method=environ.get("REQUEST_METHOD", "GET").upper(),
        path=path,
        headers=_headers(environ),
        query_string=query,
        body=body,
        client=_client(environ),
    )


def _reason(status: int) -> str:
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return ""


def write_cgi_response(response: Response, stdout: BinaryIO) -> None:
    """Write *response* as a CGI reply: ``Status:`` line, headers, blank line, body."""
    body = response.body_bytes
    lines = [
        f"Status: {response.status} {_reason(response.status)}".rstrip(),
        f"Content-Type: {response.content_type}",
        *(f"{name}: {value}" for name, value in response.headers),
        f"Content-Length: {len(body)}",
    ]
    stdout.write(("\r\n".join(lines) + "\r\n\r\n").encode("latin-1"))
    stdout.write(body)
    stdout.flush()
