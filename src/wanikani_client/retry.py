"""
Rate-limit handling for API calls.

WaniKani answers 429 with a RateLimit-Reset header naming the epoch second
at which the window reopens. RateLimitPolicy suspends the caller until that
instant and replays the identical operation. Consecutive rate-limit hits are
capped so a misbehaving server cannot hold a caller forever; the hit after
the cap propagates unchanged.

Only RateLimitExceeded is retried here. Every other error, retryable or not,
propagates to the caller with its category intact.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, TypeVar

from wanikani_client.config import Settings
from wanikani_client.errors import RateLimitExceeded

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RateLimitPolicy:
    """
    Wait-then-retry policy for rate-limited requests.

    Attributes:
        max_retries: Rate-limit hits tolerated per operation before the
            error is surfaced (default 3).
        fallback_seconds: Wait used when the server omits RateLimit-Reset.
        clock: Returns the current UTC time.
        sleep: Coroutine used to suspend; injectable for tests.

    Example:
        policy = RateLimitPolicy(max_retries=3)
        response = await policy.run(lambda: client.send(resources.summary()))
    """

    max_retries: int = 3
    fallback_seconds: float = 60.0
    clock: Callable[[], datetime] = field(default=_utcnow)
    sleep: Callable[[float], Awaitable[None]] = field(default=asyncio.sleep)

    @classmethod
    def from_settings(cls, settings: Settings) -> "RateLimitPolicy":
        return cls(
            max_retries=settings.rate_limit_max_retries,
            fallback_seconds=settings.rate_limit_fallback_seconds,
        )

    def delay_until(self, reset: datetime | None) -> float:
        """
        Seconds to wait before the window reopens.

        Args:
            reset: Reset instant reported by the server, if any.

        Returns:
            Non-negative delay; the fallback when reset is unknown.
        """
        if reset is None:
            return self.fallback_seconds
        return max(0.0, (reset - self.clock()).total_seconds())

    def should_retry(self, retry_count: int) -> bool:
        """True while fewer than max_retries waits have been spent."""
        return retry_count < self.max_retries

    async def run(self, operation: Callable[[], Awaitable[T]]) -> T:
        """
        Run an operation, waiting out rate limits between attempts.

        The operation is called again unchanged after each wait, so it must
        build the identical request every time.

        Raises:
            RateLimitExceeded: When the limit is hit more than max_retries times.
        """
        retry_count = 0
        while True:
            try:
                return await operation()
            except RateLimitExceeded as e:
                if not self.should_retry(retry_count):
                    logger.warning(
                        f"Rate limit still exceeded after {retry_count} waits, giving up"
                    )
                    raise
                delay = self.delay_until(e.reset)
                retry_count += 1
                logger.info(
                    f"Rate limited on {e.url}; waiting {delay:.1f}s "
                    f"(attempt {retry_count}/{self.max_retries})"
                )
                await self.sleep(delay)
