"""``turnstile routes``: print the route table."""

import argparse
import sys

from turnstile.cli._resolve import resolve_app
from turnstile.errors import ConfigurationError
from turnstile.routing.route import Route

HEADERS = ("METHOD", "PATTERN", "HANDLER", "MIDDLEWARE")


def format_routes(routes: list[Route]) -> list[str]:
    """Format *routes* as aligned table lines, header first."""
    rows = [
        (route.method, route.pattern, route.handler_name, ", ".join(route.middleware) or "-")
        for route in routes
    ]
    widths = [max(len(row[i]) for row in [HEADERS, *rows]) for i in range(3)]
    fmt = f"{{:<{widths[0]}}}  {{:<{widths[1]}}}  {{:<{widths[2]}}}  {{}}"
    lines = [fmt.format(*HEADERS)]
    lines.append("-" * min(sum(widths) + 6 + len(HEADERS[3]), 80))
    lines.extend(fmt.format(*row) for row in rows)
    return lines


def run_routes(args: argparse.Namespace) -> None:
    """List the routes of ``args.app``, grouped by method, in registration order."""
    try:
        app = resolve_app(args.app)
    except (ModuleNotFoundError, AttributeError, TypeError, ConfigurationError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    routes = app.routes
    if not routes:
        print("No routes registered.")
        return

    for line in format_routes(routes):
        print(line)
