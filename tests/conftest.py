"""Pytest configuration and fixtures shared across all test modules.

Environment defaults are set before any import of ``app.core.config`` so the
settings singleton is built from them.
"""

import os
from unittest.mock import Mock

import pytest

# CRITICAL: Set these before any imports that might load settings
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("APP_RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("LOG_FORMAT", "json")

from app.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter  # noqa: E402


@pytest.fixture
def clock() -> Mock:
    """Millisecond clock frozen at the epoch; tests move it via return_value."""
    return Mock(return_value=0)


@pytest.fixture
def limiter(clock: Mock) -> InMemoryFixedWindowRateLimiter:
    return InMemoryFixedWindowRateLimiter(clock=clock)
