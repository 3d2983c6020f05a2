"""
Constants for the market data refresh jobs.
"""

# Environment variable names
FINNHUB_API_KEY_ENV_VAR = "FINNHUB_API_KEY"
FINNHUB_REQUESTS_PER_MINUTE_ENV_VAR = "FINNHUB_REQUESTS_PER_MINUTE"
YAHOO_REQUESTS_PER_MINUTE_ENV_VAR = "YAHOO_REQUESTS_PER_MINUTE"
YAHOO_REQUESTS_PER_DAY_ENV_VAR = "YAHOO_REQUESTS_PER_DAY"
MAX_WORKERS_ENV_VAR = "REFRESH_MAX_WORKERS"
TIME_BUDGET_ENV_VAR = "REFRESH_TIME_BUDGET_SECONDS"
LOG_LEVEL_ENV_VAR = "LOG_LEVEL"

# Provider identifiers (rate limiter partition keys)
FINNHUB_PROVIDER = "finnhub"
YAHOO_PROVIDER = "yahoo"
NEWSAPI_PROVIDER = "newsApi"

# Free-tier quotas: (requests per minute, requests per day or None)
PROVIDER_QUOTAS = {
    FINNHUB_PROVIDER: (60, None),
    YAHOO_PROVIDER: (100, None),
    NEWSAPI_PROVIDER: (10, 100),
}

# Max concurrent per-symbol workers; kept well below the Finnhub per-minute quota
MAX_WORKERS = 8

# Execution ceiling of the scheduled trigger
RUN_TIME_BUDGET_SECONDS = 300
# No new symbol starts within this margin of the ceiling
SOFT_DEADLINE_MARGIN_SECONDS = 30
# Time reserved at the end of a run for persisting results
PERSIST_RESERVE_SECONDS = 15

# Longest a single outbound call waits for a rate limiter token
TOKEN_WAIT_TIMEOUT_SECONDS = 60.0
TOKEN_WAIT_INITIAL_BACKOFF_SECONDS = 0.25
TOKEN_WAIT_MAX_BACKOFF_SECONDS = 2.0

# Errors included in a serialized RefreshResult
MAX_REPORTED_ERRORS = 50

# NASDAQ universe cache lifetime
SYMBOLS_CACHE_TTL_SECONDS = 24 * 60 * 60

# Trading sessions used for growth windows
TRADING_DAYS_1M = 22
TRADING_DAYS_6M = 126
TRADING_DAYS_12M = 252

# Data older than this is reported as stale
STALE_AFTER_HOURS = 26

# Sequential ranges that together cover the NASDAQ universe
FULL_REFRESH_RANGES = (("A", "K"), ("L", "Z"))

# Universe names
NASDAQ_UNIVERSE = "nasdaq"
TLV_UNIVERSE = "tlv"
