"""Signed, expiring bearer tokens (JWT, HS256).

A token is three dot-joined base64url segments::

    base64url(header) "." base64url(claims) "." base64url(hmac_sha256(secret, h "." c))

The header is always ``{"typ":"JWT","alg":"HS256"}``. The signature is
recomputed from the raw header and claims segments on every decode and
compared in constant time; nothing in the token itself chooses the
algorithm or the key.

Usage::

    from turnstile.security.tokens import decode, encode

    token = encode({"sub": "42"}, secret="s3cr3t", ttl=3600)
    claims = decode(token, secret="s3cr3t")   # {"sub": "42", "iat": ..., "exp": ...}
"""

from __future__ import annotations

import hashlib
import hmac
import json
import re
import secrets
import time
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from itsdangerous.encoding import base64_decode, base64_encode
from itsdangerous.exc import BadData

from turnstile.errors import ConfigurationError, TurnstileError

if TYPE_CHECKING:
    from turnstile.config import AppConfig
    from turnstile.http.request import Request

HEADER: dict[str, str] = {"typ": "JWT", "alg": "HS256"}

_BEARER_RE = re.compile(r"^\s*bearer\s+(.*?)\s*$", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TokenError(TurnstileError):
    """Base for token encode/decode failures."""

    default_message = "Invalid token"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class EncodingError(TokenError):
    """The claims could not be serialized to JSON."""

    default_message = "Token claims are not JSON serializable"


class MalformedToken(TokenError):
    """The input is not a three-segment token string."""

    default_message = "Invalid or missing token"


class InvalidEncoding(TokenError):
    """A header or claims segment is not base64url-encoded JSON."""

    default_message = "Invalid token encoding"


class InvalidSignature(TokenError):
    """The signature does not match the header and claims."""

    default_message = "Invalid token signature"


class TokenExpired(TokenError):
    """The token's ``exp`` claim is in the past."""

    default_message = "Token has expired"


# ---------------------------------------------------------------------------
# Codec
# ---------------------------------------------------------------------------


def _b64(data: bytes) -> str:
    return base64_encode(data).decode("ascii")


def _json_segment(obj: Mapping[str, Any], *, sort_keys: bool) -> str:
    return _b64(json.dumps(obj, separators=(",", ":"), sort_keys=sort_keys).encode("utf-8"))


def _sign(signing_input: str, secret: str) -> str:
    digest = hmac.new(secret.encode("utf-8"), signing_input.encode("utf-8"), hashlib.sha256)
    return _b64(digest.digest())


def _load_segment(segment: str) -> dict[str, Any]:
    try:
        value = json.loads(base64_decode(segment))
    except (BadData, ValueError, RecursionError):
        # RecursionError: pathologically nested JSON
        raise InvalidEncoding() from None
    if not isinstance(value, dict):
        raise InvalidEncoding()
    return value


def encode(
    claims: Mapping[str, Any],
    secret: str,
    ttl: int,
    *,
    now: float | None = None,
) -> str:
    """Sign *claims* into a token valid for *ttl* seconds.

    ``iat`` and ``exp`` are added (overwriting any caller-supplied values);
    the caller's mapping is not modified. Raises ``EncodingError`` if the
    claims cannot be serialized.
    """
    issued_at = int(time.time() if now is None else now)
    payload = {**claims, "iat": issued_at, "exp": issued_at + ttl}
    try:
        claims_segment = _json_segment(payload, sort_keys=True)
    except (TypeError, ValueError) as exc:
        raise EncodingError(f"Token claims are not JSON serializable: {exc}") from exc

    signing_input = f"{_json_segment(HEADER, sort_keys=False)}.{claims_segment}"
    return f"{signing_input}.{_sign(signing_input, secret)}"


def decode(token: Any, secret: str, *, now: float | None = None) -> dict[str, Any]:
    """Verify *token* and return its claims (including ``iat`` and ``exp``).

    Structure is checked first, then encoding, signature and expiry,
    and the first failure raises the matching ``TokenError`` subclass.
    A token is valid strictly before its ``exp`` second.
    """
    if not token or not isinstance(token, str):
        raise MalformedToken()

    parts = token.split(".")
    if len(parts) != 3:
        raise MalformedToken("Invalid token structure")

    header_segment, claims_segment, signature = parts
    _load_segment(header_segment)
    claims = _load_segment(claims_segment)

    expected = _sign(f"{header_segment}.{claims_segment}", secret)
    if not secrets.compare_digest(signature.encode("utf-8"), expected.encode("utf-8")):
        raise InvalidSignature()

    current = time.time() if now is None else now
    exp = claims.get("exp")
    if exp is not None:
        if not isinstance(exp, int | float) or isinstance(exp, bool):
            raise InvalidEncoding("Invalid token expiry")
        if exp <= current:
            raise TokenExpired()

    return claims


def extract_from_header(value: str | None) -> str | None:
    """Return the token from an ``Authorization: Bearer <token>`` value.

    Returns ``None``, not an error, when the header is missing, uses a
    different scheme, or carries an empty token.
    """
    if not value:
        return None
    match = _BEARER_RE.match(value)
    if match is None:
        return None
    return match.group(1) or None


class TokenCodec:
    """A codec bound to one secret and lifetime.

    Usage::

        codec = TokenCodec.from_config(app.config)
        token = codec.encode({"sub": user.id})
        claims = codec.decode(token)
    """

    __slots__ = ("secret", "ttl")

    def __init__(self, secret: str, ttl: int = 3600) -> None:
        if not secret:
            msg = "A token secret is required. Set JWT_SECRET or AppConfig.token_secret."
            raise ConfigurationError(msg)
        self.secret = secret
        self.ttl = ttl

    @classmethod
    def from_config(cls, config: AppConfig) -> TokenCodec:
        return cls(config.token_secret, config.token_ttl)

    def encode(self, claims: Mapping[str, Any], *, ttl: int | None = None) -> str:
        return encode(claims, self.secret, self.ttl if ttl is None else ttl)

    def decode(self, token: Any) -> dict[str, Any]:
        return decode(token, self.secret)

    def from_request(self, request: Request) -> str | None:
        """Extract the bearer token from *request*'s Authorization header."""
        return extract_from_header(request.headers.get("authorization"))
