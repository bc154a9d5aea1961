"""Path patterns compiled to regular expressions matched against the whole path.

``/users/{id}`` compiles to ``/users/([^/]+)``. Literal text is escaped so
it matches exactly; each ``{name}`` placeholder captures one run of
non-slash characters. Captures are returned positionally, in pattern order.
"""

import re
from dataclasses import dataclass

from turnstile.errors import ConfigurationError

_PLACEHOLDER_RE = re.compile(r"\{([^{}/]+)\}")


@dataclass(frozen=True, slots=True)
class PathMatcher:
    """A compiled route pattern."""

    pattern: str
    regex: re.Pattern[str]
    param_names: tuple[str, ...]


def normalize_path(path: str) -> str:
    """Trim one trailing slash; the empty path becomes ``/``."""
    if len(path) > 1 and path.endswith("/"):
        path = path[:-1]
    return path or "/"


def compile_pattern(pattern: str) -> PathMatcher:
    """Compile a route pattern such as ``/users/{id}/posts/{post}``.

    Raises ``ConfigurationError`` for unbalanced braces or Flask-style
    ``<param>`` placeholders.
    """
    if "<" in pattern and ">" in pattern:
        msg = (
            f"Route pattern {pattern!r} uses <param> syntax. "
            "Use {param} placeholders instead."
        )
        raise ConfigurationError(msg)

    normalized = normalize_path(pattern)
    parts: list[str] = []
    names: list[str] = []
    pos = 0
    for match in _PLACEHOLDER_RE.finditer(normalized):
        parts.append(re.escape(normalized[pos : match.start()]))
        parts.append("([^/]+)")
        names.append(match.group(1))
        pos = match.end()
    tail = normalized[pos:]
    if "{" in tail or "}" in tail or any("{" in p or "}" in p for p in parts):
        msg = f"Route pattern {pattern!r} has an unbalanced placeholder."
        raise ConfigurationError(msg)
    parts.append(re.escape(tail))

    return PathMatcher(
        pattern=pattern,
        regex=re.compile("".join(parts)),
        param_names=tuple(names),
    )


def match(matcher: PathMatcher, path: str) -> list[str] | None:
    """Return the captured parameters for *path*, or ``None`` if it does not match."""
    found = matcher.regex.fullmatch(normalize_path(path))
    if found is None:
        return None
    return list(found.groups())
