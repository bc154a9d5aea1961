"""Application configuration.

AppConfig is a frozen dataclass, immutable after creation.
``get()`` gives the dispatcher and middleware a plain key lookup without
depending on where the values came from.
"""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import dotenv_values

from turnstile.errors import ConfigurationError

_TRUE_VALUES = frozenset({"1", "true", "on", "yes"})

# Environment variable -> AppConfig field
ENV_FIELDS: dict[str, str] = {
    "APP_NAME": "name",
    "DEBUG": "debug",
    "TIMEZONE": "timezone",
    "BASE_PATH": "base_path",
    "JWT_SECRET": "token_secret",
    "JWT_EXPIRATION": "token_ttl",
    "JWT_ALGORITHM": "token_algorithm",
    "CORS_ORIGINS": "cors_origins",
    "CORS_METHODS": "cors_methods",
    "CORS_HEADERS": "cors_headers",
    "DB_ENABLE": "db_enable",
    "LOG_DIR": "log_dir",
    "LOG_LEVEL": "log_level",
}


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Application configuration. Immutable after creation.

    All fields have development defaults. Override what you need::

        config = AppConfig(debug=True, token_secret="s3cr3t", base_path="/api")
    """

    name: str = "Turnstile"
    debug: bool = False
    timezone: str = "UTC"

    # Prefix stripped from every incoming path before matching
    base_path: str = ""

    # Tokens
    token_secret: str = ""
    token_ttl: int = 3600
    token_algorithm: str = "HS256"

    # CORS, sent verbatim on every response
    cors_origins: str = "*"
    cors_methods: str = "GET,POST,PUT,DELETE,OPTIONS"
    cors_headers: str = "Content-Type,Authorization,X-Requested-With"

    # Datastore
    db_enable: bool = False

    # Logging
    log_dir: str | None = None
    log_level: str = "info"

    def __post_init__(self) -> None:
        if self.token_algorithm != "HS256":
            msg = f"Unsupported token algorithm {self.token_algorithm!r}; only HS256 is available."
            raise ConfigurationError(msg)
        if self.token_ttl < 0:
            msg = f"token_ttl must not be negative, got {self.token_ttl}"
            raise ConfigurationError(msg)

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a configuration value by field name."""
        if key in self.keys():
            return getattr(self, key)
        return default

    @classmethod
    def keys(cls) -> tuple[str, ...]:
        return tuple(f.name for f in dataclasses.fields(cls))

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        *,
        env_file: str | Path | None = ".env",
        **overrides: Any,
    ) -> AppConfig:
        """Build a config from environment variables.

        Values from *env_file* (if it exists) are read first; the process
        environment (or *environ*) wins over them, and *overrides* win over
        both. Raises ``ConfigurationError`` for malformed values.
        """
        values: dict[str, str] = {}
        if env_file is not None and Path(env_file).is_file():
            values.update({k: v for k, v in dotenv_values(env_file).items() if v is not None})
        values.update(os.environ if environ is None else environ)

        kwargs: dict[str, Any] = {}
        for env_name, field_name in ENV_FIELDS.items():
            if env_name in values:
                kwargs[field_name] = _coerce(field_name, values[env_name])
        kwargs.update(overrides)
        return cls(**kwargs)


def _coerce(field_name: str, raw: str) -> Any:
    """Convert a raw environment string to the type of *field_name*."""
    if field_name in ("debug", "db_enable"):
        return parse_bool(raw)
    if field_name == "token_ttl":
        try:
            return int(raw.strip())
        except ValueError:
            msg = f"JWT_EXPIRATION must be an integer number of seconds, got {raw!r}"
            raise ConfigurationError(msg) from None
    if field_name == "log_dir":
        return raw or None
    return raw


def parse_bool(raw: str | bool | None) -> bool:
    """Lenient boolean parsing: ``1``, ``true``, ``on``, ``yes`` are true.

    Anything else, including unrecognised strings, is false.
    """
    if isinstance(raw, bool):
        return raw
    if raw is None:
        return False
    return raw.strip().lower() in _TRUE_VALUES
