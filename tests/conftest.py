from types import SimpleNamespace

import pytest

from patchkit.runtime.registry import PatchRegistry


@pytest.fixture
def registry():
    """A registry private to one test, so the process-wide one stays untouched."""
    return PatchRegistry()


@pytest.fixture
def owner():
    """A plain object with one existing attribute."""
    return SimpleNamespace(existing="original")


@pytest.fixture
def make_class():
    """Factory for fresh, empty classes, one per call."""

    def factory(name="Target", **attrs):
        return type(name, (), dict(attrs))

    return factory
