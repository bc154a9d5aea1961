"""Security: signed bearer tokens.

Provides:
    encode / decode -- HS256 JWT encode and constant-time verify
    extract_from_header -- ``Authorization: Bearer <token>`` parsing
    TokenCodec -- codec bound to a configured secret and lifetime
"""

from turnstile.security.tokens import (
    EncodingError,
    InvalidEncoding,
    InvalidSignature,
    MalformedToken,
    TokenCodec,
    TokenError,
    TokenExpired,
    decode,
    encode,
    extract_from_header,
)

__all__ = [
    "EncodingError",
    "InvalidEncoding",
    "InvalidSignature",
    "MalformedToken",
    "TokenCodec",
    "TokenError",
    "TokenExpired",
    "decode",
    "encode",
    "extract_from_header",
]
