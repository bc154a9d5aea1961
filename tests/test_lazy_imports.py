"""Tests for the lazy top-level API in turnstile/__init__.py."""

import pytest

import turnstile


class TestLazyImports:
    @pytest.mark.parametrize("name", turnstile.__all__)
    def test_public_names_resolve(self, name: str) -> None:
        assert getattr(turnstile, name) is not None

    def test_unknown_name(self) -> None:
        with pytest.raises(AttributeError, match="no attribute"):
            turnstile.nope  # noqa: B018

    def test_identity(self) -> None:
        from turnstile.app import App

        assert turnstile.App is App
