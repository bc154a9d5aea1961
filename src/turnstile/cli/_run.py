"""``turnstile run``: handle one CGI request with an app and exit.

Point a CGI-capable web server at a script that runs
``turnstile run myapp:app``; each request gets a fresh process.
"""

import argparse
import sys

from turnstile.cli._resolve import resolve_app
from turnstile.errors import ConfigurationError


def run_cgi(args: argparse.Namespace) -> None:
    try:
        app = resolve_app(args.app)
    except (ModuleNotFoundError, AttributeError, TypeError, ConfigurationError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    app.run()
