"""Invoke helpers: call sync or async handlers uniformly.

Handlers and middleware can be ``def`` or ``async def``. Anything that
calls user code goes through ``invoke()`` so the check lives in one place.
"""

import inspect
from collections.abc import Callable
from typing import Any


async def invoke(handler: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Call *handler* and await the result if it's awaitable."""
    result = handler(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result


def accepts(handler: Callable[..., Any], name: str) -> bool:
    """Whether *handler*'s signature has a parameter called *name*.

    Builtins and other callables without an inspectable signature accept nothing.
    """
    try:
        params = inspect.signature(handler).parameters
    except (TypeError, ValueError):
        return False
    param = params.get(name)
    if param is None:
        return False
    return param.kind in (inspect.Parameter.POSITIONAL_OR_KEYWORD, inspect.Parameter.KEYWORD_ONLY)
