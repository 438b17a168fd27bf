"""
Service wiring: builds every component from one Config.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from unicorn_trader.audit.audit_logger import AuditLogger
from unicorn_trader.config.config_schema import Config
from unicorn_trader.execution.trade_executor import TradeExecutionEngine
from unicorn_trader.ledger.ledger_store import LedgerStore
from unicorn_trader.ledger.models import Account
from unicorn_trader.llm import LLMClient, get_llm_client
from unicorn_trader.market.quote_cache import (
    FinnhubQuoteProvider,
    PriceUnavailableError,
    QuoteCache,
    QuoteProvider,
)
from unicorn_trader.market.snapshot_builder import MarketSnapshotBuilder
from unicorn_trader.scheduler.market_calendar import MarketCalendar
from unicorn_trader.scheduler.run_guard import RunSlotGuard
from unicorn_trader.scheduler.trading_run import TradingRunCoordinator
from unicorn_trader.trader.persona_agent import PersonaDecisionEngine
from unicorn_trader.trader.personas import DEFAULT_ROSTER, PERSONA_PROFILES

logger = logging.getLogger(__name__)


@dataclass
class TradingServices:
    config: Config
    store: LedgerStore
    quote_cache: QuoteCache
    snapshot_builder: MarketSnapshotBuilder
    decision_engine: PersonaDecisionEngine
    executor: TradeExecutionEngine
    audit_logger: AuditLogger
    run_guard: RunSlotGuard
    calendar: MarketCalendar
    coordinator: TradingRunCoordinator

    def initialize(self, with_roster: bool = True) -> int:
        """Seed the instrument catalog and, optionally, the default persona roster"""
        self.store.seed_instruments()
        created = 0
        if with_roster:
            for user_id, name, emoji, strategy, catchphrase in DEFAULT_ROSTER:
                if self.store.get_account(user_id) is None:
                    self.store.provision_persona(
                        user_id=user_id, display_name=name, strategy=strategy,
                        catchphrase=catchphrase, emoji=emoji,
                    )
                    created += 1
        return created

    def reset_account(self, user_id: str) -> Account:
        """Reset balances and wipe holdings, transactions and audit history"""
        account = self.store.reset_account(user_id)
        removed = self.audit_logger.delete_entries(user_id)
        logger.info(f"Removed {removed} audit entries for {user_id}")
        return account

    def update_persona(self, user_id: str, is_active: Optional[bool] = None, strategy: Optional[str] = None,
                       personality_prompt: Optional[str] = None, catchphrase: Optional[str] = None) -> Account:
        """Operator edit of a persona; the strategy must be a known archetype"""
        if strategy is not None:
            strategy = strategy.strip().upper()
            if strategy not in PERSONA_PROFILES:
                raise ValueError(
                    f"Unknown strategy '{strategy}'; expected one of {', '.join(sorted(PERSONA_PROFILES))}"
                )
        return self.store.update_persona(
            user_id, is_active=is_active, strategy=strategy,
            personality_prompt=personality_prompt, catchphrase=catchphrase,
        )

    def sync_reference_prices(self) -> Dict[str, Dict]:
        """
        Refresh every instrument's reference price from a live quote.

        Only live (or fresh cached) prices are written back; a fallback price
        is reported as a failure for that ticker.
        """
        results: Dict[str, Dict] = {}
        for instrument in self.store.list_instruments(tradable_only=False):
            ticker = instrument.ticker
            self.quote_cache.invalidate(ticker)
            try:
                quote = self.quote_cache.get_quote(ticker)
            except PriceUnavailableError as e:
                results[ticker] = {'success': False, 'error': str(e)}
                continue

            if quote.source != 'live':
                results[ticker] = {
                    'success': False,
                    'error': f"No live price (fell back to {quote.source})",
                }
                continue

            self.store.update_reference_price(ticker, quote.price, quote.change_pct)
            results[ticker] = {'success': True, 'price': quote.price, 'change_pct': quote.change_pct}

        synced = sum(1 for r in results.values() if r['success'])
        logger.info(f"Synced {synced}/{len(results)} reference prices")
        return results

    def close(self):
        self.audit_logger.close()


def build_services(
    config: Config,
    llm_client: Optional[LLMClient] = None,
    quote_provider: Optional[QuoteProvider] = None
) -> TradingServices:
    """
    Construct the full service graph.

    Args:
        config: Loaded configuration
        llm_client: Override for the text-generation client (tests)
        quote_provider: Override for the live quote provider (tests)
    """
    db_path = config.database.path
    busy_timeout = config.database.busy_timeout_seconds

    store = LedgerStore(db_path, starting_balance=config.starting_balance, busy_timeout=busy_timeout)

    provider = quote_provider or FinnhubQuoteProvider(
        api_key=config.quotes.api_key,
        base_url=config.quotes.base_url,
        timeout=config.quotes.timeout_seconds,
    )
    quote_cache = QuoteCache(
        provider,
        reference_lookup=store.get_reference_price,
        ttl_seconds=config.quotes.cache_ttl_seconds,
    )

    if llm_client is None:
        if not config.llm.api_key:
            logger.warning("LLM API key missing; every decision request will fail and persona turns will HOLD")
        llm_client = get_llm_client(
            provider=config.llm.provider,
            model=config.llm.model,
            api_key=config.llm.api_key or "",
            timeout=config.llm.timeout_seconds,
            max_retries=config.llm.max_retries,
        )

    snapshot_builder = MarketSnapshotBuilder(store, quote_cache)
    decision_engine = PersonaDecisionEngine(
        llm_client, temperature=config.llm.temperature, max_tokens=config.llm.max_tokens
    )
    executor = TradeExecutionEngine(store, quote_cache)
    audit_logger = AuditLogger(
        db_path, queue_size=config.audit.queue_size, enabled=config.audit.enabled, busy_timeout=busy_timeout
    )
    run_guard = RunSlotGuard(
        db_path, retry_failed_slots=config.schedule.retry_failed_slots, busy_timeout=busy_timeout
    )
    calendar = MarketCalendar.from_config(config.schedule)

    coordinator = TradingRunCoordinator(
        store=store,
        snapshot_builder=snapshot_builder,
        decision_engine=decision_engine,
        executor=executor,
        audit_logger=audit_logger,
        run_guard=run_guard,
        calendar=calendar,
        wall_clock_budget_seconds=config.batch.wall_clock_budget_seconds,
        inter_persona_delay_seconds=config.batch.inter_persona_delay_seconds,
    )

    return TradingServices(
        config=config,
        store=store,
        quote_cache=quote_cache,
        snapshot_builder=snapshot_builder,
        decision_engine=decision_engine,
        executor=executor,
        audit_logger=audit_logger,
        run_guard=run_guard,
        calendar=calendar,
        coordinator=coordinator,
    )
