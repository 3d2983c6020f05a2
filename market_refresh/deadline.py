"""
Run deadline handed to every provider call of a unit of work.

Outbound calls bound their token waits and retry delays by the time left,
so units abandoned at the hard deadline stop taking tokens and making
requests instead of running on after their run has returned.
"""

import time
from typing import Callable, Optional

from .exceptions import RunDeadlineError


class RunDeadline:
    """Point in time, on the run's clock, after which no provider call starts."""

    def __init__(self, expires_at: float, clock: Callable[[], float] = time.monotonic):
        self.expires_at = expires_at
        self._clock = clock

    def remaining(self) -> float:
        return max(0.0, self.expires_at - self._clock())

    @property
    def expired(self) -> bool:
        return self._clock() >= self.expires_at

    def check(self) -> None:
        """
        Raises:
            RunDeadlineError: If the deadline has passed
        """
        if self.expired:
            raise RunDeadlineError("run deadline passed")

    def __repr__(self) -> str:
        return f"RunDeadline(expires_at={self.expires_at}, remaining={self.remaining():.1f}s)"


def bounded_wait(timeout_seconds: float, deadline: Optional[RunDeadline]) -> float:
    """Shorten a wait so it never runs past ``deadline``."""
    if deadline is None:
        return timeout_seconds
    return min(timeout_seconds, deadline.remaining())
