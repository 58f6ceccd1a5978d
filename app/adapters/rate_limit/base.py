"""Rate limiter interfaces.

The HTTP layer depends on this abstraction (not the concrete implementation)
so the in-process table can later be swapped for a shared counter store
(e.g., Redis) behind the same ``check``/``sweep`` contract.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone


@dataclass(frozen=True)
class RateLimitPolicy:
    """Quota applied to one family of requests.

    Attributes:
        name: Policy name, used to namespace limiter keys (e.g., "chat").
        max_requests: Maximum admitted requests per window.
        window_ms: Window length in milliseconds.
    """

    name: str
    max_requests: int
    window_ms: int

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("name must be a non-empty string")
        if self.max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if self.window_ms < 1:
            raise ValueError("window_ms must be >= 1")


@dataclass(frozen=True)
class RateLimitDecision:
    """Result of a rate limit check.

    Attributes:
        allowed: Whether the request may proceed.
        limit: Max requests per window for the policy that was checked.
        remaining: Remaining requests in the current window (0 when rejected).
        reset_at: Epoch milliseconds when the current window expires.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int

    def retry_after_seconds(self, now_ms: int) -> int:
        """Whole seconds until the window resets, rounded up."""
        return max(0, int(math.ceil((self.reset_at - now_ms) / 1000)))

    def reset_at_iso(self) -> str:
        """Reset time as an ISO-8601 UTC string (``2024-01-01T00:00:00.000Z``)."""
        moment = datetime.fromtimestamp(self.reset_at / 1000, tz=timezone.utc)
        return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    def now_ms(self) -> int:
        """Current time in epoch milliseconds, as seen by the limiter."""
        raise NotImplementedError

    @abstractmethod
    def check(self, identifier: str, max_requests: int, window_ms: int) -> RateLimitDecision:
        """Decide whether a new request from ``identifier`` may proceed.

        Args:
            identifier: Key partitioning rate limit state (e.g., client IP).
            max_requests: Quota per window.
            window_ms: Window length in milliseconds.

        Returns:
            RateLimitDecision describing whether it was allowed.
        """
        raise NotImplementedError

    @abstractmethod
    def sweep(self, now: int | None = None) -> int:
        """Remove every tracking entry whose window has expired.

        Args:
            now: Epoch milliseconds to sweep against (defaults to the clock).

        Returns:
            Number of entries removed.
        """
        raise NotImplementedError

    def check_policy(self, identifier: str, policy: RateLimitPolicy) -> RateLimitDecision:
        """Check ``identifier`` under ``policy`` in the policy's own key space."""
        return self.check(f"{policy.name}:{identifier}", policy.max_requests, policy.window_ms)
