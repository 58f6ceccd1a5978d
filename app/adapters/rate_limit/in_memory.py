"""In-memory fixed-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit,
  and all counts are lost on restart.
- Thread-safe: ``check`` and ``sweep`` share one lock around the table.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitDecision


def _epoch_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class RateRecord:
    """Tracking state for one key within its current window."""

    count: int
    reset_at: int


class InMemoryFixedWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter counting requests per key in a window opened by the first request.

    Each key gets its own window starting at its first request, so windows are
    not aligned across keys. Up to ``2 * max_requests`` requests can pass
    across a window boundary; this is coarse abuse protection, not billing.

    Rejected requests do not touch the record: the count stays at the quota
    and ``reset_at`` is unchanged until the window expires.
    """

    def __init__(self, *, clock: Callable[[], int] = _epoch_ms) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            clock: Time source returning epoch milliseconds.
        """
        self._clock = clock
        self._lock = threading.RLock()
        self._records: dict[str, RateRecord] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def now_ms(self) -> int:
        return int(self._clock())

    def check(self, identifier: str, max_requests: int, window_ms: int) -> RateLimitDecision:
        """Check and, when allowed, count a request for ``identifier``.

        Args:
            identifier: Unique key for rate limiting (e.g., "chat:203.0.113.7").
            max_requests: Quota per window.
            window_ms: Window length in milliseconds.

        Returns:
            RateLimitDecision with the admit/reject outcome and quota metadata.

        Raises:
            ValueError: If identifier is empty or the quota/window are not positive.
        """
        if not identifier:
            raise ValueError("identifier must be a non-empty string")
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if window_ms < 1:
            raise ValueError("window_ms must be >= 1")

        with self._lock:
            now = self.now_ms()
            record = self._records.get(identifier)

            if record is None or now > record.reset_at:
                record = RateRecord(count=1, reset_at=now + window_ms)
                self._records[identifier] = record
                return RateLimitDecision(
                    allowed=True,
                    limit=max_requests,
                    remaining=max_requests - 1,
                    reset_at=record.reset_at,
                )

            if record.count >= max_requests:
                return RateLimitDecision(
                    allowed=False,
                    limit=max_requests,
                    remaining=0,
                    reset_at=record.reset_at,
                )

            record.count += 1
            return RateLimitDecision(
                allowed=True,
                limit=max_requests,
                remaining=max_requests - record.count,
                reset_at=record.reset_at,
            )

    def sweep(self, now: int | None = None) -> int:
        with self._lock:
            cutoff = self.now_ms() if now is None else now
            expired_keys = [k for k, record in self._records.items() if record.reset_at <= cutoff]
            for key in expired_keys:
                del self._records[key]
            return len(expired_keys)
