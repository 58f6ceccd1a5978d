"""Rate limiting adapters.

This package provides a small abstraction layer so the API edge can start with
an in-memory limiter and later migrate to Redis or another shared store
without changing the HTTP layer.
"""

from __future__ import annotations

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitDecision, RateLimitPolicy
from app.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from app.adapters.rate_limit.sweeper import RateLimitSweeper

__all__ = [
    "AbstractRateLimiter",
    "InMemoryFixedWindowRateLimiter",
    "RateLimitDecision",
    "RateLimitPolicy",
    "RateLimitSweeper",
]
