"""Request-data validation.

One rule exists: ``required``. Rules are given per field, either as a
pipe-separated string or a list of rule names::

    result = validate(data, {"name": "required", "email": ["required"]})
    if not result:
        # result.errors == {"email": "The email field is required"}
        ...

An unknown rule name is a programming error and raises
``ConfigurationError`` rather than passing silently.
"""

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from turnstile.errors import ConfigurationError

# A rule gets the field name and value; it returns an error message or None
type Rule = Callable[[str, Any], str | None]

type RuleSpec = str | Iterable[str]


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """The outcome of ``validate()``. Falsy when any field failed.

    ``errors`` maps each failing field to its first error message.
    """

    data: dict[str, Any]
    errors: dict[str, str]

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def __bool__(self) -> bool:
        return self.is_valid


def is_missing(value: Any) -> bool:
    """Absent, ``None``, a blank string, or an empty container.

    ``0`` and ``False`` are present values.
    """
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set, frozenset)):
        return not value
    return False


def required(field: str, value: Any) -> str | None:
    """Field must be present and non-empty."""
    if is_missing(value):
        return f"The {field} field is required"
    return None


RULES: dict[str, Rule] = {
    "required": required,
}


def _rule_names(spec: RuleSpec) -> list[str]:
    names = spec.split("|") if isinstance(spec, str) else list(spec)
    return [name.strip() for name in names if name and name.strip()]


def _lookup(name: str) -> Rule:
    try:
        return RULES[name]
    except KeyError:
        msg = f"Unknown validation rule {name!r}; available: {', '.join(sorted(RULES))}"
        raise ConfigurationError(msg) from None


def validate(data: Mapping[str, Any] | None, rules: Mapping[str, RuleSpec]) -> ValidationResult:
    """Check *data* against *rules*.

    ``data`` of ``None`` (an empty request body) is treated as an empty mapping.
    Every rule name is checked before any data is, so a typo fails even on
    valid input.
    """
    data = data or {}
    compiled = {
        field: [_lookup(name) for name in _rule_names(spec)] for field, spec in rules.items()
    }

    errors: dict[str, str] = {}
    for field, checks in compiled.items():
        value = data.get(field)
        for check in checks:
            message = check(field, value)
            if message is not None:
                errors[field] = message
                break

    cleaned = {field: data[field] for field in compiled if field in data} if not errors else {}
    return ValidationResult(data=cleaned, errors=errors)
