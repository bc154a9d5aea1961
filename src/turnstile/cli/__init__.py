"""Turnstile CLI: route listing, token minting, project setup, CGI runner.

Entry point registered as ``turnstile`` in ``pyproject.toml``::

    [project.scripts]
    turnstile = "turnstile.cli:main"
"""

import argparse
import sys


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``turnstile`` command."""
    parser = argparse.ArgumentParser(
        prog="turnstile",
        description="Turnstile: a minimal HTTP dispatcher with middleware and bearer-token auth.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # -- turnstile routes -------------------------------------------------
    routes_parser = subparsers.add_parser("routes", help="List registered routes")
    routes_parser.add_argument("app", help="Import string (e.g. myapp:app)")

    # -- turnstile token --------------------------------------------------
    token_parser = subparsers.add_parser("token", help="Mint a bearer token")
    token_parser.add_argument(
        "--claims",
        default="{}",
        help='Claims as a JSON object (e.g. \'{"sub": "42"}\')',
    )
    token_parser.add_argument(
        "--ttl",
        type=int,
        default=None,
        help="Lifetime in seconds (default: JWT_EXPIRATION)",
    )
    token_parser.add_argument("--env-file", default=".env", help="Path to the .env file")

    # -- turnstile setup --------------------------------------------------
    setup_parser = subparsers.add_parser("setup", help="Create the log directory and .env")
    setup_parser.add_argument("--dir", default=".", help="Project directory")
    setup_parser.add_argument(
        "--log-dir",
        default="storage/logs",
        help="Log directory, relative to the project directory",
    )

    # -- turnstile run ----------------------------------------------------
    run_parser = subparsers.add_parser("run", help="Handle one CGI request and exit")
    run_parser.add_argument("app", help="Import string (e.g. myapp:app)")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "routes":
        from turnstile.cli._routes import run_routes

        run_routes(args)
    elif args.command == "token":
        from turnstile.cli._token import run_token

        run_token(args)
    elif args.command == "setup":
        from turnstile.cli._setup import run_setup

        run_setup(args)
    elif args.command == "run":
        from turnstile.cli._run import run_cgi

        run_cgi(args)
