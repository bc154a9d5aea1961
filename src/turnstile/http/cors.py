"""CORS response headers.

Every response, preflight and error replies included, carries the configured
allow-lists plus ``Access-Control-Allow-Credentials: true``. Values are
sent verbatim from ``AppConfig``.
"""

from turnstile.config import AppConfig
from turnstile.http.response import Response

PREFLIGHT_METHOD = "OPTIONS"


def cors_headers(config: AppConfig) -> tuple[tuple[str, str], ...]:
    return (
        ("Access-Control-Allow-Origin", config.cors_origins),
        ("Access-Control-Allow-Methods", config.cors_methods),
        ("Access-Control-Allow-Headers", config.cors_headers),
        ("Access-Control-Allow-Credentials", "true"),
    )


def with_cors_headers(response: Response, config: AppConfig) -> Response:
    """Return *response* with the CORS headers set."""
    return response.with_headers(cors_headers(config))
