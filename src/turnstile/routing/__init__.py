"""Routing: an ordered route table with positional path parameters.

Routes are registered during setup and frozen before the first request.
"""

from turnstile.routing.matcher import PathMatcher, compile_pattern, match, normalize_path
from turnstile.routing.route import ControllerAction, Route, RouteMatch
from turnstile.routing.router import METHODS, Router

__all__ = [
    "METHODS",
    "ControllerAction",
    "PathMatcher",
    "Route",
    "RouteMatch",
    "Router",
    "compile_pattern",
    "match",
    "normalize_path",
]
