"""``turnstile token``: mint a bearer token from the configured secret."""

import argparse
import json
import sys

from turnstile.config import AppConfig
from turnstile.errors import ConfigurationError
from turnstile.security.tokens import EncodingError, TokenCodec


def run_token(args: argparse.Namespace) -> None:
    """Print a token for ``args.claims``, signed with ``JWT_SECRET``."""
    try:
        claims = json.loads(args.claims)
    except ValueError as exc:
        print(f"Error: --claims is not valid JSON: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc
    if not isinstance(claims, dict):
        print("Error: --claims must be a JSON object", file=sys.stderr)
        raise SystemExit(1)

    try:
        codec = TokenCodec.from_config(AppConfig.from_env(env_file=args.env_file))
        token = codec.encode(claims, ttl=args.ttl)
    except (ConfigurationError, EncodingError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    print(token)
