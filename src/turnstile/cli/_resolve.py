"""App import resolution: ``"module:attribute"`` strings to App instances.

Shared by ``turnstile routes`` and ``turnstile run``.
"""

import importlib
import inspect
from typing import Any

from turnstile.app import App
from turnstile.errors import ConfigurationError


def _is_route_setup(obj: Any) -> bool:
    """True for a ``routes(app)`` callable: exactly one required positional parameter."""
    try:
        params = inspect.signature(obj).parameters.values()
    except (TypeError, ValueError):
        return False
    positional = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
    required = [p for p in params if p.kind in positional and p.default is p.empty]
    return len(required) == 1


def resolve_app(import_string: str) -> App:
    """Resolve an import string to a turnstile App instance.

    Accepts ``"module:attribute"``; the attribute defaults to ``app``. The
    attribute may be:

    - an ``App`` instance, used as is;
    - a route setup function ``routes(app)``, applied to ``App.from_env()``;
    - a zero-argument factory returning an ``App``.

    Raises:
        ModuleNotFoundError: If the module cannot be imported.
        AttributeError: If the attribute does not exist on the module.
        ConfigurationError: If building the app rejected its configuration.
        TypeError: If the resolved object is not an ``App`` or a way to build one.
    """
    module_path, _, attr_name = import_string.partition(":")
    module = importlib.import_module(module_path)
    obj = getattr(module, attr_name or "app")

    if callable(obj) and not isinstance(obj, App):
        if _is_route_setup(obj):
            return App.from_env(routes=obj)
        try:
            obj = obj()
        except ConfigurationError:
            raise
        except Exception as exc:
            msg = f"App factory {import_string!r} failed: {exc}"
            raise TypeError(msg) from exc

    if not isinstance(obj, App):
        msg = f"{import_string!r} resolved to {type(obj).__name__}, not a turnstile.App instance"
        raise TypeError(msg)

    return obj
