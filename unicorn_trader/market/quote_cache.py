"""
Quote Cache: time-boxed cache over the live quote provider.

Resolution order for a ticker:
1. Cached quote younger than the TTL
2. Live quote from the provider (cached on success)
3. Last cached quote, however old (logged as stale)
4. Persisted reference price from the ledger
5. PriceUnavailableError; callers must abort rather than guess a price
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from threading import Lock
from typing import Callable, Dict, Literal, Optional

import requests
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

PriceOrigin = Literal['live', 'cache', 'stale_cache', 'reference']


class QuoteProviderError(Exception):
    """The quote provider failed or returned an unusable price"""


class PriceUnavailableError(Exception):
    """No live, cached or reference price exists for a ticker"""


@dataclass
class ProviderQuote:
    price: float
    change_pct: Optional[float] = None


class PriceQuote(BaseModel):
    """A resolved price and where it came from"""
    ticker: str
    price: float = Field(gt=0)
    change_pct: Optional[float] = None
    source: PriceOrigin
    fetched_at: Optional[datetime] = None


class QuoteProvider(ABC):
    """External real-time quote provider"""

    @abstractmethod
    def get_quote(self, ticker: str) -> ProviderQuote:
        """Return a live quote or raise QuoteProviderError"""
        pass


class FinnhubQuoteProvider(QuoteProvider):
    """
    Finnhub /quote endpoint.

    Response fields used: c (current price), dp (percent change today).
    A zero price is what Finnhub returns for unknown symbols and rate-limited
    requests, so anything not strictly positive counts as a failure.
    """

    def __init__(self, api_key: Optional[str], base_url: str = "https://finnhub.io/api/v1",
                 timeout: float = 5.0):
        self.api_key = api_key
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout

    def get_quote(self, ticker: str) -> ProviderQuote:
        if not self.api_key:
            raise QuoteProviderError("Finnhub API key not configured")

        try:
            response = requests.get(
                f"{self.base_url}/quote",
                params={
                    'symbol': ticker.upper(),
                    'token': self.api_key,
                    '_': int(time.time() * 1000),
                },
                headers={
                    'Cache-Control': 'no-cache, no-store, must-revalidate',
                    'Pragma': 'no-cache',
                },
                timeout=self.timeout
            )
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            raise QuoteProviderError(f"Finnhub request for {ticker} failed: {e}")
        except ValueError as e:
            raise QuoteProviderError(f"Finnhub returned invalid JSON for {ticker}: {e}")

        price = data.get('c') if isinstance(data, dict) else None
        if not isinstance(price, (int, float)) or price <= 0:
            raise QuoteProviderError(f"Finnhub returned no valid price for {ticker}: {data}")

        change_pct = data.get('dp')
        return ProviderQuote(
            price=float(price),
            change_pct=float(change_pct) if isinstance(change_pct, (int, float)) else None
        )


class PriceSource(ABC):
    """Anything that can resolve a ticker to a positive price"""

    @abstractmethod
    def get_quote(self, ticker: str) -> PriceQuote:
        """Resolve a quote or raise PriceUnavailableError"""
        pass

    def get_price(self, ticker: str) -> float:
        return self.get_quote(ticker).price


@dataclass
class CachedQuote:
    price: float
    change_pct: Optional[float]
    fetched_at: float

    def age(self, now: float) -> float:
        return now - self.fetched_at


class QuoteCache(PriceSource):
    """
    Process-wide quote cache injected into every price consumer.

    Concurrent misses for the same ticker may both call the provider; the
    later write wins, which is harmless for idempotent reads. The lock only
    guards the map itself, never a provider call.
    """

    def __init__(
        self,
        provider: QuoteProvider,
        reference_lookup: Optional[Callable[[str], Optional[float]]] = None,
        ttl_seconds: float = 300,
        clock: Callable[[], float] = time.time
    ):
        """
        Args:
            provider: Live quote provider
            reference_lookup: Returns the persisted reference price for a ticker
            ttl_seconds: How long a live quote counts as fresh (default: 5 minutes)
            clock: Epoch-seconds clock, replaceable in tests
        """
        self.provider = provider
        self.reference_lookup = reference_lookup
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CachedQuote] = {}
        self._lock = Lock()

    def get_quote(self, ticker: str) -> PriceQuote:
        ticker = ticker.upper()
        now = self._clock()

        with self._lock:
            cached = self._entries.get(ticker)

        if cached and cached.age(now) < self.ttl_seconds:
            return self._to_quote(ticker, cached, 'cache')

        try:
            live = self.provider.get_quote(ticker)
        except QuoteProviderError as e:
            logger.warning(f"Quote provider failed for {ticker}: {e}")
        else:
            entry = CachedQuote(price=live.price, change_pct=live.change_pct, fetched_at=now)
            with self._lock:
                self._entries[ticker] = entry
            logger.debug(f"Live quote {ticker}: ${live.price:.2f}")
            return self._to_quote(ticker, entry, 'live')

        if cached:
            logger.warning(
                f"Using stale cached price for {ticker}: ${cached.price:.2f} "
                f"({cached.age(now):.0f}s old)"
            )
            return self._to_quote(ticker, cached, 'stale_cache')

        reference = self.reference_lookup(ticker) if self.reference_lookup else None
        if reference is not None and reference > 0:
            logger.warning(f"Using reference price for {ticker}: ${reference:.2f}")
            return PriceQuote(ticker=ticker, price=reference, source='reference')

        raise PriceUnavailableError(f"No live, cached or reference price for {ticker}")

    def invalidate(self, ticker: Optional[str] = None):
        """Drop one cached ticker, or everything"""
        with self._lock:
            if ticker is None:
                self._entries.clear()
            else:
                self._entries.pop(ticker.upper(), None)

    def cache_status(self) -> Dict[str, Dict]:
        """Per-ticker cached price, age and freshness"""
        now = self._clock()
        with self._lock:
            entries = dict(self._entries)
        return {
            ticker: {
                'price': entry.price,
                'age_seconds': round(entry.age(now), 1),
                'fresh': entry.age(now) < self.ttl_seconds,
            }
            for ticker, entry in sorted(entries.items())
        }

    def _to_quote(self, ticker: str, entry: CachedQuote, source: PriceOrigin) -> PriceQuote:
        return PriceQuote(
            ticker=ticker,
            price=entry.price,
            change_pct=entry.change_pct,
            source=source,
            fetched_at=datetime.fromtimestamp(entry.fetched_at)
        )
