"""Logging setup for turnstile processes.

Library modules only create named loggers (``turnstile.server``,
``turnstile.app``, ``turnstile.diagnostics``); handlers are installed here,
once, by ``App.from_env()`` or the CLI.

- WARNING and above go to ``{log_dir}/app_YYYY-MM-DD.log`` when ``log_dir`` is set.
- Everything at the configured level (DEBUG when ``debug=True``) goes to stderr.
"""

import logging
import sys
from datetime import date, datetime, tzinfo
from pathlib import Path

from turnstile.config import AppConfig
from turnstile.errors import ConfigurationError

FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_HANDLER_MARK = "_turnstile_handler"


def log_file_path(
    log_dir: str | Path, day: date | None = None, tz: tzinfo | None = None
) -> Path:
    """Path of the daily log file for *day* (default: today in *tz*, or local time)."""
    day = day or datetime.now(tz).date()
    return Path(log_dir) / f"app_{day:%Y-%m-%d}.log"


def _formatter(tz: tzinfo | None) -> logging.Formatter:
    formatter = logging.Formatter(FORMAT, DATE_FORMAT)
    if tz is not None:
        formatter.converter = lambda seconds: datetime.fromtimestamp(seconds, tz).timetuple()
    return formatter


def _level(config: AppConfig) -> int:
    if config.debug:
        return logging.DEBUG
    level = logging.getLevelName(config.log_level.upper())
    if not isinstance(level, int):
        msg = f"Unknown log level {config.log_level!r}"
        raise ConfigurationError(msg)
    return level


def configure_logging(config: AppConfig, tz: tzinfo | None = None) -> logging.Logger:
    """Install turnstile's handlers on the ``turnstile`` logger.

    Timestamps and the daily file name follow *tz* (the app's timezone);
    without it they use local time.

    Safe to call more than once: handlers from an earlier call are replaced.
    """
    root = logging.getLogger("turnstile")
    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_MARK, False):
            root.removeHandler(handler)
            handler.close()

    level = _level(config)
    formatter = _formatter(tz)

    stream = logging.StreamHandler(sys.stderr)
    stream.setLevel(level)
    stream.setFormatter(formatter)
    setattr(stream, _HANDLER_MARK, True)
    root.addHandler(stream)

    if config.log_dir:
        path = log_file_path(config.log_dir, tz=tz)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, encoding="utf-8")
        file_handler.setLevel(logging.WARNING)
        file_handler.setFormatter(formatter)
        setattr(file_handler, _HANDLER_MARK, True)
        root.addHandler(file_handler)

    root.setLevel(min(level, logging.WARNING))
    return root
