"""
Exceptions raised while refreshing market data.

Per-symbol errors carry a ``kind`` that prefixes the message recorded in a
RefreshResult, so operators can tell throttling apart from provider or data
problems.
"""

from typing import Optional


class RefreshError(Exception):
    """Base exception for all refresh errors."""
    kind = "error"


class ProviderError(RefreshError):
    """Transient provider failure: network error, timeout, HTTP 429/5xx."""
    kind = "provider error"

    def __init__(self, provider: str, message: str, status_code: Optional[int] = None):
        self.provider = provider
        self.status_code = status_code
        super().__init__(f"{provider}: {message}")


class ProviderDataError(RefreshError):
    """Provider answered, but the payload is malformed or has no usable data."""
    kind = "data error"

    def __init__(self, symbol: str, message: str):
        self.symbol = symbol
        super().__init__(message)


class RateLimitExceededError(RefreshError):
    """No rate limiter token became available within the wait budget."""
    kind = "rate limited"

    def __init__(self, provider: str, waited_seconds: float):
        self.provider = provider
        self.waited_seconds = waited_seconds
        super().__init__(f"no {provider} token available within {waited_seconds:.1f}s")


class RunDeadlineError(RefreshError):
    """The run's time budget ran out before the symbol could be refreshed."""
    kind = "deadline"


class FatalRefreshError(RefreshError):
    """Run-level failure: the run cannot produce a complete result."""
    kind = "fatal"


class UnknownUniverseError(KeyError):
    """Raised when a symbol universe name is not registered."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown symbol universe: {name}")

    def __str__(self) -> str:
        return self.args[0]
