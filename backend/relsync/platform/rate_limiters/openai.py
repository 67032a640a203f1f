"""Per-worker rate limiter for OpenAI embedding requests."""

import asyncio
import time
from collections import deque
from typing import Deque, Optional

from relsync.core.config import settings
from relsync.core.logging import logger
from relsync.platform.sync.exceptions import EmbeddingError


class EmbeddingRateLimiter:
    """Sliding one-second window over the worker's embedding request budget.

    Every sync job in the worker process draws from the same budget. A request
    that gets no slot within `max_wait_seconds` fails its batch.
    """

    WINDOW_SECONDS = 1.0
    POLL_INTERVAL_SECONDS = 0.1

    def __init__(
        self,
        requests_per_minute: Optional[int] = None,
        max_wait_seconds: Optional[float] = None,
    ):
        """Initialize from settings unless limits are given."""
        rpm = requests_per_minute or settings.EMBEDDING_REQUESTS_PER_MINUTE
        self.requests_per_window = rpm / 60 * self.WINDOW_SECONDS
        self.max_wait_seconds = (
            settings.EMBEDDING_RATE_LIMIT_MAX_WAIT_SECONDS
            if max_wait_seconds is None
            else max_wait_seconds
        )
        self._sent: Deque[float] = deque()
        self._lock = asyncio.Lock()
        logger.debug(f"Embedding rate limiter: {rpm} requests per minute per worker")

    async def acquire(self) -> None:
        """Wait for a request slot.

        Raises:
            EmbeddingError: No slot freed up within `max_wait_seconds`
        """
        deadline = time.monotonic() + self.max_wait_seconds
        while True:
            async with self._lock:
                now = time.monotonic()
                while self._sent and self._sent[0] <= now - self.WINDOW_SECONDS:
                    self._sent.popleft()
                if len(self._sent) < self.requests_per_window:
                    self._sent.append(now)
                    return

            if time.monotonic() >= deadline:
                raise EmbeddingError(
                    f"No embedding request slot within {self.max_wait_seconds}s; "
                    "the worker's request budget is exhausted"
                )
            await asyncio.sleep(self.POLL_INTERVAL_SECONDS)


_limiter: Optional[EmbeddingRateLimiter] = None


def get_embedding_rate_limiter() -> EmbeddingRateLimiter:
    """Return the worker's shared limiter, creating it on first use."""
    global _limiter
    if _limiter is None:
        _limiter = EmbeddingRateLimiter()
    return _limiter
