"""
Rate Limiter Module - Global gate on outgoing responses
=======================================================

Token bucket limiting how many responses the bot sends per second.
Tokens refill continuously from elapsed time at call time; there is
no background timer. Callers that cannot consume a token drop their
response instead of waiting.
"""

import time
import threading
from typing import Callable, Tuple

from .exceptions import ConfigError
from .logging import get_logger

logger = get_logger("rate_limiter")


class TokenBucket:
    """
    Token bucket rate limiter implementation.

    Provides smooth rate limiting with burst support using the
    token bucket algorithm. Tokens are added at a fixed rate
    up to a maximum capacity.

    Attributes:
        capacity (float): Maximum number of tokens
        refill_rate (float): Tokens added per second
        tokens (float): Current number of tokens
        last_refill (float): Last refill timestamp
    """

    def __init__(
        self,
        capacity: float,
        refill_rate: float,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize token bucket.

        Args:
            capacity: Maximum number of tokens (burst size)
            refill_rate: Tokens added per second
            clock: Time source in seconds, monotonic by default
        """
        self.capacity = float(capacity)
        self.refill_rate = float(refill_rate)
        self.clock = clock
        self.tokens = float(capacity)
        self.last_refill = clock()
        self.lock = threading.Lock()

    def consume(self, tokens: int = 1) -> Tuple[bool, float]:
        """
        Try to consume tokens from the bucket.

        Args:
            tokens: Number of tokens to consume

        Returns:
            Tuple of (success, wait_time) where wait_time is
            seconds until enough tokens would be available
        """
        with self.lock:
            self._refill()

            if self.tokens >= tokens:
                self.tokens -= tokens
                return True, 0.0

            needed = tokens - self.tokens
            return False, needed / self.refill_rate

    def resize(self, capacity: float, refill_rate: float) -> None:
        """Change capacity and rate, keeping at most `capacity` tokens."""
        with self.lock:
            self._refill()
            self.capacity = float(capacity)
            self.refill_rate = float(refill_rate)
            self.tokens = min(self.tokens, self.capacity)

    def _refill(self) -> None:
        """Refill tokens based on elapsed time."""
        now = self.clock()
        elapsed = max(0.0, now - self.last_refill)
        self.tokens = min(
            self.capacity,
            self.tokens + elapsed * self.refill_rate
        )
        self.last_refill = now

    def get_state(self) -> Tuple[float, float]:
        """
        Get current bucket state.

        Returns:
            Tuple of (current_tokens, last_refill_time)
        """
        with self.lock:
            self._refill()
            return self.tokens, self.last_refill


class RateLimiter:
    """
    Global response rate limiter.

    Allows `rate_limit` responses per second with a burst of one
    second's worth. The bucket starts full.

    Example:
        limiter = RateLimiter(rate_limit=2)

        if limiter.try_consume():
            transport.send(...)
        else:
            # Drop the response
    """

    def __init__(self, rate_limit: float = 2, clock: Callable[[], float] = time.monotonic):
        self._check_rate(rate_limit)
        self.rate_limit = rate_limit
        self.bucket = TokenBucket(
            capacity=rate_limit,
            refill_rate=rate_limit,
            clock=clock
        )
        logger.debug("Rate limiter initialized", extra={"rate_limit": rate_limit})

    @staticmethod
    def _check_rate(rate_limit: float) -> None:
        if rate_limit < 1:
            raise ConfigError(f"rate_limit must be at least 1, got {rate_limit}")

    def try_consume(self) -> bool:
        """
        Take one token if available.

        Returns:
            True if a response may be sent now
        """
        allowed, wait_time = self.bucket.consume(1)
        if not allowed:
            logger.warning(f"Rate limit reached, next slot in {wait_time:.2f}s")
        return allowed

    def reconfigure(self, rate_limit: float) -> None:
        """Apply a new rate after a settings reload."""
        self._check_rate(rate_limit)
        if rate_limit == self.rate_limit:
            return
        self.bucket.resize(rate_limit, rate_limit)
        logger.info(f"Rate limit changed from {self.rate_limit}/s to {rate_limit}/s")
        self.rate_limit = rate_limit

    @property
    def available(self) -> float:
        """Currently available tokens."""
        return self.bucket.get_state()[0]
