"""Shared fixtures."""

from __future__ import annotations

import pytest
import structlog

from headerguard.core.config import clear_settings


@pytest.fixture(autouse=True)
def _reset_global_state():
    """Reset structlog configuration and cached settings between tests."""
    clear_settings()
    yield
    structlog.reset_defaults()
    clear_settings()
