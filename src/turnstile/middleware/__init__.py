"""Middleware: protocol, chain executor, and built-ins."""

from turnstile.middleware.auth import AuthMiddleware
from turnstile.middleware.builtin import RequestLoggingMiddleware
from turnstile.middleware.chain import run_chain
from turnstile.middleware.protocol import Middleware, Resolver

__all__ = [
    "AuthMiddleware",
    "Middleware",
    "RequestLoggingMiddleware",
    "Resolver",
    "run_chain",
]
