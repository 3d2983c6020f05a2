"""
Market data refresh pipeline.

Refreshes quotes, growth and company profiles for NASDAQ and Tel Aviv stocks
from rate-limited providers, one partition of the universe per run.
"""

from .config import RefreshSettings
from .entities.refresh_result import RefreshResult, SymbolOutcome
from .exceptions import (
    FatalRefreshError,
    ProviderDataError,
    ProviderError,
    RateLimitExceededError,
    RefreshError,
    RunDeadlineError,
    UnknownUniverseError,
)
from .orchestrator import StockRefreshOrchestrator
from .rate_limiter import RateLimiter, RateLimiterRegistry, RateLimiterStatus, create_rate_limiter
from .status import build_refresh_status
from .symbol_partitioner import SymbolPartitioner, filter_symbols_by_range

__version__ = "1.0.0"
__all__ = [
    "RefreshSettings",
    "RefreshResult",
    "SymbolOutcome",
    "FatalRefreshError",
    "ProviderDataError",
    "ProviderError",
    "RateLimitExceededError",
    "RefreshError",
    "RunDeadlineError",
    "UnknownUniverseError",
    "StockRefreshOrchestrator",
    "RateLimiter",
    "RateLimiterRegistry",
    "RateLimiterStatus",
    "create_rate_limiter",
    "build_refresh_status",
    "SymbolPartitioner",
    "filter_symbols_by_range",
]
