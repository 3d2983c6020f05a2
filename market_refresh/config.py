"""
Runtime settings for refresh jobs, read from environment variables.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .constants import (
    FINNHUB_API_KEY_ENV_VAR,
    FINNHUB_PROVIDER,
    FINNHUB_REQUESTS_PER_MINUTE_ENV_VAR,
    LOG_LEVEL_ENV_VAR,
    MAX_WORKERS,
    MAX_WORKERS_ENV_VAR,
    PROVIDER_QUOTAS,
    RUN_TIME_BUDGET_SECONDS,
    SOFT_DEADLINE_MARGIN_SECONDS,
    TIME_BUDGET_ENV_VAR,
    YAHOO_PROVIDER,
    YAHOO_REQUESTS_PER_DAY_ENV_VAR,
    YAHOO_REQUESTS_PER_MINUTE_ENV_VAR,
)


def _read_int(env: Mapping[str, str], name: str, default: Optional[int]) -> Optional[int]:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer, got {raw!r}")
    if value <= 0:
        raise ValueError(f"Environment variable {name} must be positive, got {value}")
    return value


@dataclass(frozen=True)
class RefreshSettings:
    """Settings shared by every refresh run in a process."""
    finnhub_api_key: Optional[str]
    finnhub_requests_per_minute: int
    yahoo_requests_per_minute: int
    yahoo_requests_per_day: Optional[int]
    max_workers: int
    time_budget_seconds: int
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> 'RefreshSettings':
        """
        Build settings from environment variables, falling back to the free-tier defaults.

        Args:
            env: Mapping to read instead of os.environ

        Returns:
            RefreshSettings

        Raises:
            ValueError: If a numeric variable is not a positive integer, or the time
                budget leaves no room before the soft deadline
        """
        if env is None:
            env = os.environ

        finnhub_rpm, _ = PROVIDER_QUOTAS[FINNHUB_PROVIDER]
        yahoo_rpm, yahoo_rpd = PROVIDER_QUOTAS[YAHOO_PROVIDER]

        time_budget_seconds = _read_int(env, TIME_BUDGET_ENV_VAR, RUN_TIME_BUDGET_SECONDS)
        if time_budget_seconds <= SOFT_DEADLINE_MARGIN_SECONDS:
            raise ValueError(f"Environment variable {TIME_BUDGET_ENV_VAR} must be greater than "
                             f"{SOFT_DEADLINE_MARGIN_SECONDS}, got {time_budget_seconds}")

        return cls(
            finnhub_api_key=(env.get(FINNHUB_API_KEY_ENV_VAR) or None),
            finnhub_requests_per_minute=_read_int(env, FINNHUB_REQUESTS_PER_MINUTE_ENV_VAR, finnhub_rpm),
            yahoo_requests_per_minute=_read_int(env, YAHOO_REQUESTS_PER_MINUTE_ENV_VAR, yahoo_rpm),
            yahoo_requests_per_day=_read_int(env, YAHOO_REQUESTS_PER_DAY_ENV_VAR, yahoo_rpd),
            max_workers=_read_int(env, MAX_WORKERS_ENV_VAR, MAX_WORKERS),
            time_budget_seconds=time_budget_seconds,
            log_level=(env.get(LOG_LEVEL_ENV_VAR) or "INFO").upper(),
        )
