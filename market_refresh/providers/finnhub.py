"""
Finnhub REST client.

Every outbound request first takes a token from the Finnhub rate limiter.
HTTP 429, 5xx and network errors are retried with a linear delay; other
failures surface as ProviderError or ProviderDataError so the orchestrator
can report them per symbol.
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional

import requests

from data_layer import CompanyProfile, ValidationError

from ..constants import FINNHUB_PROVIDER, TOKEN_WAIT_TIMEOUT_SECONDS
from ..deadline import RunDeadline, bounded_wait
from ..entities.market_data import Quote
from ..exceptions import ProviderDataError, ProviderError, RateLimitExceededError
from ..rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

FINNHUB_BASE_URL = "https://finnhub.io/api/v1"
REQUEST_TIMEOUT_SECONDS = 10
MAX_ATTEMPTS = 3
RETRY_DELAY_SECONDS = 1.0


class FinnhubClient:
    """Quotes, company profiles and exchange symbol lists from Finnhub."""

    def __init__(self,
                 api_key: str,
                 rate_limiter: RateLimiter,
                 session: Optional[requests.Session] = None,
                 token_timeout_seconds: float = TOKEN_WAIT_TIMEOUT_SECONDS,
                 sleep: Callable[[float], None] = time.sleep):
        if not api_key:
            raise ValueError("A Finnhub API key is required")
        self._api_key = api_key
        self.rate_limiter = rate_limiter
        self.session = session or requests.Session()
        self.token_timeout_seconds = token_timeout_seconds
        self._sleep = sleep

    def _get(self,
             path: str,
             params: Dict[str, str],
             subject: str,
             deadline: Optional[RunDeadline] = None) -> Any:
        """
        GET ``path`` and return the decoded JSON body.

        Token waits and retry delays never run past ``deadline``.

        Args:
            path: Endpoint path below the API base URL
            params: Query parameters, without the API token
            subject: Symbol or exchange the request is about, for error messages
            deadline: Run deadline, or None for calls outside a run

        Raises:
            RunDeadlineError: If the deadline passed before a request could start
            RateLimitExceededError: If no token became available in time
            ProviderError: On network errors or non-2xx responses
            ProviderDataError: If the body is not JSON
        """
        url = f"{FINNHUB_BASE_URL}{path}"
        query = dict(params, token=self._api_key)
        last_error: Optional[ProviderError] = None

        for attempt in range(1, MAX_ATTEMPTS + 1):
            if deadline is not None:
                deadline.check()
            timeout = bounded_wait(self.token_timeout_seconds, deadline)
            if not self.rate_limiter.wait_for_token(timeout, sleep=self._sleep):
                if deadline is not None:
                    deadline.check()
                raise RateLimitExceededError(FINNHUB_PROVIDER, timeout)

            try:
                response = self.session.get(url, params=query, timeout=REQUEST_TIMEOUT_SECONDS)
            except requests.exceptions.RequestException as e:
                # Exception text can contain the full URL, token included
                last_error = ProviderError(FINNHUB_PROVIDER, f"{path} request failed: {type(e).__name__}")
                logger.debug(f"Finnhub request for {subject} failed (attempt {attempt}/{MAX_ATTEMPTS}): {type(e).__name__}")
            else:
                status = response.status_code
                if status == 429 or status >= 500:
                    last_error = ProviderError(FINNHUB_PROVIDER, f"{path} returned HTTP {status}", status)
                    logger.debug(f"Finnhub returned HTTP {status} for {subject} (attempt {attempt}/{MAX_ATTEMPTS})")
                elif status >= 400:
                    raise ProviderError(FINNHUB_PROVIDER, f"{path} returned HTTP {status}", status)
                else:
                    try:
                        return response.json()
                    except ValueError:
                        raise ProviderDataError(subject, f"{path} returned a non-JSON body")

            if attempt < MAX_ATTEMPTS:
                delay = RETRY_DELAY_SECONDS * attempt
                if deadline is not None and deadline.remaining() <= delay:
                    logger.debug(f"No time left to retry Finnhub request for {subject}")
                    break
                self._sleep(delay)

        raise last_error

    def get_quote(self, symbol: str, deadline: Optional[RunDeadline] = None) -> Quote:
        """
        Latest quote for ``symbol``.

        Raises:
            ProviderDataError: If Finnhub has no price for the symbol (c == 0)
        """
        data = self._get("/quote", {"symbol": symbol}, symbol, deadline)
        if not isinstance(data, dict):
            raise ProviderDataError(symbol, "unexpected quote payload")

        price = data.get("c")
        if not price:
            raise ProviderDataError(symbol, "no quote available")

        return Quote(
            symbol=symbol,
            price=price,
            previous_close=data.get("pc"),
            change=data.get("d"),
            change_pct=data.get("dp"),
        )

    def get_company_profile(self, symbol: str,
                            deadline: Optional[RunDeadline] = None) -> Optional[CompanyProfile]:
        """
        Company profile for ``symbol``, or None when Finnhub has none.

        Finnhub reports market capitalization in millions.
        """
        data = self._get("/stock/profile2", {"symbol": symbol}, symbol, deadline)
        if not isinstance(data, dict) or not data.get("name"):
            logger.debug(f"No Finnhub profile for {symbol}")
            return None

        market_cap_millions = data.get("marketCapitalization") or 0
        try:
            return CompanyProfile(
                symbol=symbol,
                name=data["name"],
                exchange=data.get("exchange"),
                industry=data.get("finnhubIndustry"),
                market_cap=int(round(market_cap_millions * 1_000_000)),
                logo=data.get("logo") or None,
                website=data.get("weburl") or None,
            )
        except (ValidationError, TypeError) as e:
            raise ProviderDataError(symbol, f"invalid profile: {e}")

    def get_exchange_symbols(self, exchange: str = "US", mic: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        All symbols listed on ``exchange``, optionally restricted to one market identifier.

        Returns:
            Raw symbol entries with ``symbol``, ``description`` and ``type`` keys
        """
        params = {"exchange": exchange}
        if mic:
            params["mic"] = mic

        data = self._get("/stock/symbol", params, exchange)
        if not isinstance(data, list):
            raise ProviderDataError(exchange, "unexpected symbol list payload")
        return [entry for entry in data if isinstance(entry, dict)]
