"""Global pytest configuration and fixtures."""

from __future__ import annotations

import pytest

from rdfproxy.formats.registry import FormatRegistry, default_registry


@pytest.fixture
def registry() -> FormatRegistry:
    """The built-in format catalogue."""
    return default_registry()
