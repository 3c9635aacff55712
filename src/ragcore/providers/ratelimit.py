"""Shared token-budget rate limiting for LLM calls."""

import asyncio
import logging
import time
from collections import deque
from typing import Any, Callable

from ragcore.exceptions import InputError, RateLimitedError

logger = logging.getLogger(__name__)


class TokenRateLimiter:
    """Sliding-window limiter over tokens consumed per time window.

    One instance is shared by every provider that should draw from the same
    budget. All bookkeeping happens inside a single ``asyncio.Lock``, so
    concurrent callers never over-commit the window.

    Attributes:
        max_tokens: Tokens allowed per window
        window_seconds: Window duration in seconds
        max_wait: Longest a caller will wait for room before
            ``RateLimitedError`` is raised
    """

    def __init__(
        self,
        max_tokens: int,
        window_seconds: float = 60.0,
        max_wait: float = 10.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_tokens <= 0:
            raise InputError("max_tokens must be positive")
        if window_seconds <= 0:
            raise InputError("window_seconds must be positive")

        self.max_tokens = max_tokens
        self.window_seconds = window_seconds
        self.max_wait = max_wait
        self._clock = clock
        self._usage: deque[tuple[float, int]] = deque()
        self._used = 0
        self._lock = asyncio.Lock()

    async def acquire(self, tokens: int) -> None:
        """Reserve ``tokens`` from the budget, waiting for room if needed.

        A request larger than the whole budget is admitted only into an
        empty window.

        Raises:
            RateLimitedError: If room would not free up within ``max_wait``
        """
        tokens = max(0, tokens)

        while True:
            async with self._lock:
                now = self._clock()
                self._expire(now)

                if not self._usage or self._used + tokens <= self.max_tokens:
                    self._usage.append((now, tokens))
                    self._used += tokens
                    logger.debug(
                        f"[RateLimit] Reserved {tokens} tokens, "
                        f"{self._used}/{self.max_tokens} in window"
                    )
                    return

                wait_time = self._wait_for_room(now, tokens)

            if wait_time > self.max_wait:
                logger.warning(
                    f"[RateLimit] Budget exhausted, next slot in {wait_time:.2f}s"
                )
                raise RateLimitedError(
                    f"Token budget of {self.max_tokens} per "
                    f"{self.window_seconds:.0f}s exhausted",
                    retry_after=wait_time,
                )

            await asyncio.sleep(wait_time)

    def get_status(self) -> dict[str, Any]:
        """Get current usage of the window."""
        self._expire(self._clock())
        return {
            "used_tokens": self._used,
            "max_tokens": self.max_tokens,
            "window_seconds": self.window_seconds,
            "remaining": max(0, self.max_tokens - self._used),
        }

    def reset(self) -> None:
        """Forget all recorded usage."""
        self._usage.clear()
        self._used = 0

    def _expire(self, now: float) -> None:
        while self._usage and now - self._usage[0][0] >= self.window_seconds:
            _, spent = self._usage.popleft()
            self._used -= spent

    def _wait_for_room(self, now: float, tokens: int) -> float:
        """Seconds until enough old entries expire to fit ``tokens``."""
        needed = self._used + tokens - self.max_tokens
        freed = 0
        for stamp, spent in self._usage:
            freed += spent
            if freed >= needed:
                return max(0.0, stamp + self.window_seconds - now)
        # Only an empty window admits an oversized request
        return max(0.0, self._usage[-1][0] + self.window_seconds - now)
