"""
Market Snapshot Builder: prices and holdings for one persona at one moment.

Each snapshot resolves every tradable instrument through the price source
and values the account's holdings at those prices. Holdings whose price
cannot be resolved are flagged and valued at zero rather than priced wrong.
"""

import logging
import random
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel

from unicorn_trader.ledger.ledger_store import LedgerStore
from unicorn_trader.ledger.models import Account
from unicorn_trader.market.quote_cache import PriceQuote, PriceSource, PriceUnavailableError

logger = logging.getLogger(__name__)


class InstrumentQuote(BaseModel):
    instrument_id: int
    ticker: str
    company_name: str
    category: Optional[str] = None
    elevator_pitch: Optional[str] = None
    founder_story: Optional[str] = None
    fun_fact: Optional[str] = None
    price: Optional[float] = None
    change_pct: Optional[float] = None
    price_source: Optional[str] = None

    @property
    def price_resolved(self) -> bool:
        return self.price is not None


class HoldingSummary(BaseModel):
    instrument_id: int
    ticker: str
    company_name: str
    shares_owned: float
    cost_basis: float
    avg_purchase_price: float
    current_price: Optional[float] = None
    current_value: float = 0.0
    gain_loss: float = 0.0
    gain_loss_pct: float = 0.0
    price_resolved: bool = True


class MarketSnapshot(BaseModel):
    account_id: str
    generated_at: datetime
    available_cash: float
    instruments: List[InstrumentQuote]
    holdings: List[HoldingSummary]
    holdings_value: float
    total_value: float
    cash_percent: float
    holdings_percent: float
    unresolved_tickers: List[str] = []

    def instrument(self, instrument_id: int) -> Optional[InstrumentQuote]:
        for quote in self.instruments:
            if quote.instrument_id == instrument_id:
                return quote
        return None

    @property
    def total_cost_basis(self) -> float:
        return sum(h.cost_basis for h in self.holdings)


class MarketSnapshotBuilder:
    """Builds MarketSnapshot objects from the ledger and a price source"""

    def __init__(self, store: LedgerStore, price_source: PriceSource, rng: Optional[random.Random] = None):
        self.store = store
        self.price_source = price_source
        self._rng = rng or random.Random()

    def build_snapshot(self, account: Account) -> MarketSnapshot:
        instruments = self.store.list_instruments(tradable_only=True)
        quotes: Dict[int, InstrumentQuote] = {}
        unresolved: List[str] = []

        for inst in instruments:
            resolved = self._resolve(inst.ticker)
            if resolved is None:
                unresolved.append(inst.ticker)
            quotes[inst.instrument_id] = InstrumentQuote(
                instrument_id=inst.instrument_id,
                ticker=inst.ticker,
                company_name=inst.company_name,
                category=inst.category,
                elevator_pitch=inst.elevator_pitch,
                founder_story=inst.founder_story,
                fun_fact=inst.fun_fact,
                price=resolved.price if resolved else None,
                change_pct=(
                    resolved.change_pct
                    if resolved and resolved.change_pct is not None
                    else inst.price_change_24h
                ),
                price_source=resolved.source if resolved else None,
            )

        holdings: List[HoldingSummary] = []
        for holding in self.store.get_holdings(account.user_id):
            quote = quotes.get(holding.instrument_id)
            if quote is None:
                # Holding in an instrument no longer listed as tradable
                inst = self.store.get_instrument(holding.instrument_id)
                ticker = inst.ticker if inst else str(holding.instrument_id)
                resolved = self._resolve(ticker) if inst else None
                if resolved is None:
                    unresolved.append(ticker)
                quote = InstrumentQuote(
                    instrument_id=holding.instrument_id,
                    ticker=ticker,
                    company_name=inst.company_name if inst else ticker,
                    price=resolved.price if resolved else None,
                )
            holdings.append(self._summarize(holding, quote))

        holdings_value = sum(h.current_value for h in holdings)
        total_value = account.available_cash + holdings_value
        cash_percent = account.available_cash / total_value * 100 if total_value > 0 else 100.0

        ordered = list(quotes.values())
        self._rng.shuffle(ordered)

        if unresolved:
            logger.warning(f"Snapshot for {account.user_id}: no price for {', '.join(unresolved)}")

        return MarketSnapshot(
            account_id=account.user_id,
            generated_at=datetime.now(),
            available_cash=account.available_cash,
            instruments=ordered,
            holdings=holdings,
            holdings_value=holdings_value,
            total_value=total_value,
            cash_percent=cash_percent,
            holdings_percent=100.0 - cash_percent if total_value > 0 else 0.0,
            unresolved_tickers=unresolved,
        )

    def _resolve(self, ticker: str) -> Optional[PriceQuote]:
        try:
            return self.price_source.get_quote(ticker)
        except PriceUnavailableError as e:
            logger.warning(str(e))
            return None

    @staticmethod
    def _summarize(holding, quote: InstrumentQuote) -> HoldingSummary:
        summary = HoldingSummary(
            instrument_id=holding.instrument_id,
            ticker=quote.ticker,
            company_name=quote.company_name,
            shares_owned=holding.shares_owned,
            cost_basis=holding.cost_basis,
            avg_purchase_price=holding.avg_purchase_price,
        )
        if quote.price is None:
            summary.price_resolved = False
            return summary

        current_value = holding.shares_owned * quote.price
        gain_loss = current_value - holding.cost_basis
        summary.current_price = quote.price
        summary.current_value = current_value
        summary.gain_loss = gain_loss
        summary.gain_loss_pct = gain_loss / holding.cost_basis * 100 if holding.cost_basis > 0 else 0.0
        return summary
