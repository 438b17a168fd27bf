"""
Shared fixtures: a seeded ledger on a temp database, a static price source
and a scripted text-generation client.
"""

from typing import Dict, List, Optional, Union

import pytest

from unicorn_trader.config.config_schema import ApiConfig, BatchConfig, Config, DatabaseConfig
from unicorn_trader.ledger.ledger_store import LedgerStore
from unicorn_trader.llm.llm_client import LLMClient, LLMResponse
from unicorn_trader.market.quote_cache import (
    PriceQuote,
    PriceSource,
    PriceUnavailableError,
    ProviderQuote,
    QuoteProvider,
    QuoteProviderError,
)
from unicorn_trader.services import build_services


class StaticPriceSource(PriceSource):
    """Fixed prices per ticker; unknown tickers have no price"""

    def __init__(self, prices: Optional[Dict[str, float]] = None, source: str = 'live'):
        self.prices = dict(prices or {})
        self.source = source
        self.calls: List[str] = []

    def get_quote(self, ticker: str) -> PriceQuote:
        ticker = ticker.upper()
        self.calls.append(ticker)
        if ticker not in self.prices:
            raise PriceUnavailableError(f"No live, cached or reference price for {ticker}")
        return PriceQuote(ticker=ticker, price=self.prices[ticker], change_pct=0.0, source=self.source)


class FixedQuoteProvider(QuoteProvider):
    """Live quotes for a fixed set of tickers; anything else fails like a provider outage"""

    def __init__(self, prices: Dict[str, float]):
        self.prices = prices

    def get_quote(self, ticker: str) -> ProviderQuote:
        if ticker not in self.prices:
            raise QuoteProviderError(f"no quote for {ticker}")
        return ProviderQuote(price=self.prices[ticker], change_pct=1.0)


class FakeLLMClient(LLMClient):
    """Returns scripted response bodies in order; Exception entries are raised"""

    def __init__(self, responses: Optional[List[Union[str, Exception]]] = None):
        super().__init__(model="fake-model", api_key="test")
        self.responses = list(responses or [])
        self.calls: List[Dict] = []

    @property
    def provider_name(self) -> str:
        return "fake"

    def generate_structured(self, messages, response_schema, temperature=0.3, max_tokens=None, **kwargs):
        self.calls.append({'messages': messages, 'temperature': temperature, 'max_tokens': max_tokens})
        if not self.responses:
            return LLMResponse(content='{"action": "HOLD", "reasoning": "Nothing to do"}',
                               model=self.model, provider=self.provider_name)
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return LLMResponse(content=item, model=self.model, provider=self.provider_name)


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "unicorn_test.db")


@pytest.fixture
def store(db_path):
    """Ledger with the HM14 catalog seeded"""
    ledger = LedgerStore(db_path, starting_balance=1_000_000.0, busy_timeout=10.0)
    ledger.seed_instruments()
    return ledger


@pytest.fixture
def prices():
    return StaticPriceSource({
        'META': 50.0,
        'MSFT': 400.0,
        'NET': 200.0,
        'ABNB': 100.0,
    })


@pytest.fixture
def persona(store):
    """A MOMENTUM persona holding only cash"""
    return store.provision_persona(
        user_id='ai_fomo_master',
        display_name='FOMO Master',
        strategy='MOMENTUM',
        catchphrase="Can't miss this one!",
        emoji='🚀',
    )


@pytest.fixture
def services(db_path):
    """Fully wired service graph with META and MSFT quoted live and ai_oracle provisioned"""
    config = Config(
        database=DatabaseConfig(path=db_path),
        api=ApiConfig(cron_secret="s3cret"),
        batch=BatchConfig(inter_persona_delay_seconds=0),
    )
    wired = build_services(
        config,
        llm_client=FakeLLMClient(),
        quote_provider=FixedQuoteProvider({'META': 50.0, 'MSFT': 400.0}),
    )
    wired.initialize(with_roster=False)
    wired.store.provision_persona(user_id='ai_oracle', display_name='The Oracle', strategy='PERFECT_TIMING')
    yield wired
    wired.close()
