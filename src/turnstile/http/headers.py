"""Immutable, case-insensitive request headers.

Built from ``(name, value)`` pairs as ASGI (bytes) or CGI (str) deliver
them. Names are lowercased once at construction.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping


def _text(value: str | bytes) -> str:
    return value.decode("latin-1") if isinstance(value, bytes) else value


class Headers(Mapping[str, str]):
    """Immutable, case-insensitive HTTP headers.

    ``headers["Authorization"]`` returns the first value; ``get_list`` returns all.
    """

    __slots__ = ("_pairs",)

    def __init__(self, pairs: Iterable[tuple[str | bytes, str | bytes]] = ()) -> None:
        self._pairs: tuple[tuple[str, str], ...] = tuple(
            (_text(name).lower(), _text(value)) for name, value in pairs
        )

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, str]) -> Headers:
        return cls(mapping.items())

    def __getitem__(self, key: str) -> str:
        wanted = key.lower()
        for name, value in self._pairs:
            if name == wanted:
                return value
        raise KeyError(key)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        wanted = key.lower()
        return any(name == wanted for name, _ in self._pairs)

    def __iter__(self) -> Iterator[str]:
        return iter(dict.fromkeys(name for name, _ in self._pairs))

    def __len__(self) -> int:
        return len(dict.fromkeys(name for name, _ in self._pairs))

    def __repr__(self) -> str:
        return f"Headers({dict(self)!r})"

    def get_list(self, key: str) -> list[str]:
        """Return every value sent for *key*."""
        wanted = key.lower()
        return [value for name, value in self._pairs if name == wanted]
