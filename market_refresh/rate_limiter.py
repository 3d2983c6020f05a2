"""
Rate limiter for market data providers.

Token bucket with an optional rolling daily cap, one instance per provider.
Refill is computed lazily from elapsed time on every call, so a limiter owns
no timer or thread of its own and can be driven by a fake clock in tests.
"""

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from .constants import (
    PROVIDER_QUOTAS,
    TOKEN_WAIT_INITIAL_BACKOFF_SECONDS,
    TOKEN_WAIT_MAX_BACKOFF_SECONDS,
)

logger = logging.getLogger(__name__)

SECONDS_PER_MINUTE = 60.0
DAILY_WINDOW_SECONDS = 24 * 60 * 60


@dataclass(frozen=True)
class RateLimiterStatus:
    """Current headroom of a limiter."""
    provider: str
    tokens_remaining: int
    daily_remaining: Optional[int]
    # Seconds until the bucket is full again
    reset_in_seconds: float = 0.0

    def to_dict(self) -> Dict[str, object]:
        return {
            'provider': self.provider,
            'tokensRemaining': self.tokens_remaining,
            'dailyRemaining': self.daily_remaining,
            'resetInSeconds': self.reset_in_seconds,
        }


def _require_positive_int(name: str, value) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"{name} must be a positive integer, got {value!r}")


class RateLimiter:
    """
    Token bucket limiter for a single provider.

    The bucket holds up to ``requests_per_minute`` tokens and refills
    continuously at ``requests_per_minute`` tokens per minute. When
    ``requests_per_day`` is set, a rolling 24 hour window starting at the
    first consumption caps the total number of requests; once the window
    elapses the count starts over.

    All methods are thread-safe.
    """

    def __init__(self,
                 provider: str,
                 requests_per_minute: int,
                 requests_per_day: Optional[int] = None,
                 clock: Callable[[], float] = time.monotonic):
        """
        Initialize a full bucket.

        Args:
            provider: Provider identifier; limiters with different ids never interact
            requests_per_minute: Bucket capacity and per-minute refill total
            requests_per_day: Optional rolling 24 hour cap
            clock: Returns the current time in seconds

        Raises:
            ValueError: If a quota is not a positive integer
        """
        if not provider:
            raise ValueError("provider must be a non-empty string")
        _require_positive_int("requests_per_minute", requests_per_minute)
        if requests_per_day is not None:
            _require_positive_int("requests_per_day", requests_per_day)

        self.provider = provider
        self.capacity = requests_per_minute
        self.daily_limit = requests_per_day
        self._clock = clock
        self._lock = threading.Lock()

        self._tokens = float(requests_per_minute)
        self._last_refill_at = clock()
        self._daily_count = 0
        self._daily_window_ends_at: Optional[float] = None

    @property
    def requests_per_minute(self) -> int:
        return self.capacity

    # Internal state transitions; callers hold self._lock

    def _refresh(self) -> float:
        now = self._clock()
        elapsed = now - self._last_refill_at
        if elapsed > 0:
            self._tokens = min(float(self.capacity),
                               self._tokens + elapsed * self.capacity / SECONDS_PER_MINUTE)
            self._last_refill_at = now

        if self._daily_window_ends_at is not None and now >= self._daily_window_ends_at:
            logger.debug(f"Daily window for {self.provider} elapsed, resetting count of {self._daily_count}")
            self._daily_count = 0
            self._daily_window_ends_at = None

        return now

    def _daily_exhausted(self) -> bool:
        return self.daily_limit is not None and self._daily_count >= self.daily_limit

    # Public operations

    def consume_token(self) -> bool:
        """
        Take one token if both the minute bucket and the daily cap allow it.

        Returns:
            True if the caller may make a request now
        """
        with self._lock:
            now = self._refresh()

            if self._daily_exhausted():
                return False

            if self._tokens < 1:
                return False

            self._tokens -= 1
            self._daily_count += 1
            if self._daily_window_ends_at is None:
                self._daily_window_ends_at = now + DAILY_WINDOW_SECONDS
            return True

    def can_make_request(self) -> bool:
        """Whether consume_token() would succeed right now, without consuming."""
        with self._lock:
            self._refresh()
            return not self._daily_exhausted() and self._tokens >= 1

    def get_status(self) -> RateLimiterStatus:
        with self._lock:
            self._refresh()
            daily_remaining = None
            if self.daily_limit is not None:
                daily_remaining = max(0, self.daily_limit - self._daily_count)
            return RateLimiterStatus(
                provider=self.provider,
                tokens_remaining=int(math.floor(self._tokens)),
                daily_remaining=daily_remaining,
                reset_in_seconds=round((self.capacity - self._tokens) * SECONDS_PER_MINUTE / self.capacity, 3),
            )

    def wait_for_token(self,
                       timeout_seconds: float,
                       sleep: Callable[[float], None] = time.sleep) -> bool:
        """
        Block until a token is consumed or the timeout elapses.

        Polls with exponential backoff and never sleeps past the timeout.

        Args:
            timeout_seconds: Longest time to wait
            sleep: Sleep function, replaceable in tests

        Returns:
            True if a token was consumed, False on timeout
        """
        deadline = self._clock() + max(0.0, timeout_seconds)
        backoff = TOKEN_WAIT_INITIAL_BACKOFF_SECONDS

        while True:
            if self.consume_token():
                return True

            remaining = deadline - self._clock()
            if remaining <= 0:
                logger.debug(f"Timed out after {timeout_seconds:.1f}s waiting for a {self.provider} token")
                return False

            sleep(min(backoff, remaining))
            backoff = min(backoff * 2, TOKEN_WAIT_MAX_BACKOFF_SECONDS)

    def __repr__(self) -> str:
        return (f"RateLimiter(provider='{self.provider}', requests_per_minute={self.capacity}, "
                f"requests_per_day={self.daily_limit})")


def create_rate_limiter(provider: str,
                        requests_per_minute: int,
                        requests_per_day: Optional[int] = None,
                        clock: Callable[[], float] = time.monotonic) -> RateLimiter:
    """Create an isolated limiter for ``provider``."""
    return RateLimiter(provider, requests_per_minute, requests_per_day, clock=clock)


class RateLimiterRegistry:
    """
    Holds exactly one limiter per provider id.

    A process builds one registry and passes it to every run, so quotas are
    shared across runs that target the same provider.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._limiters: Dict[str, RateLimiter] = {}
        self._lock = threading.Lock()

    def get_or_create(self,
                      provider: str,
                      requests_per_minute: int,
                      requests_per_day: Optional[int] = None) -> RateLimiter:
        """
        Return the provider's limiter, creating it on first use.

        Raises:
            ValueError: If the provider already has a limiter with different quotas
        """
        with self._lock:
            limiter = self._limiters.get(provider)
            if limiter is None:
                limiter = create_rate_limiter(provider, requests_per_minute, requests_per_day, clock=self._clock)
                self._limiters[provider] = limiter
                logger.info(f"Created rate limiter for {provider}: {requests_per_minute}/min"
                            f"{f', {requests_per_day}/day' if requests_per_day else ''}")
                return limiter

            if limiter.capacity != requests_per_minute or limiter.daily_limit != requests_per_day:
                raise ValueError(
                    f"Rate limiter for {provider} already exists with "
                    f"{limiter.capacity}/min, {limiter.daily_limit}/day"
                )
            return limiter

    def get_or_create_default(self, provider: str) -> RateLimiter:
        """
        Return the provider's limiter with its free-tier quotas from PROVIDER_QUOTAS.

        Raises:
            KeyError: If the provider has no default quotas
            ValueError: If the provider already has a limiter with different quotas
        """
        requests_per_minute, requests_per_day = PROVIDER_QUOTAS[provider]
        return self.get_or_create(provider, requests_per_minute, requests_per_day)

    def get(self, provider: str) -> RateLimiter:
        with self._lock:
            return self._limiters[provider]

    def statuses(self) -> List[RateLimiterStatus]:
        with self._lock:
            limiters = list(self._limiters.values())
        return [limiter.get_status() for limiter in limiters]
