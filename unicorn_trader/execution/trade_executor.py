"""
Trade Execution Engine: turns a typed decision into a ledger mutation.

Per trade: VALIDATE -> APPLY -> RECORD. The engine resolves the instrument
and a live price, then hands the trade to LedgerStore.execute_trade, which
re-validates against the locked balance and applies and records the trade
in one transaction. Rejections come back as results, never exceptions.
"""

import logging
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel

from unicorn_trader.ledger.ledger_store import LedgerStore
from unicorn_trader.ledger.models import Account, TradeReceipt
from unicorn_trader.market.quote_cache import PriceSource, PriceUnavailableError
from unicorn_trader.market.snapshot_builder import MarketSnapshot
from unicorn_trader.trader.decision import BuyDecision, HoldDecision, SellDecision

logger = logging.getLogger(__name__)

# Log when the execution price moved this much since the snapshot
PRICE_DRIFT_WARN_PCT = 5.0


class TradeOutcome(str, Enum):
    EXECUTED = "EXECUTED"
    HELD = "HELD"
    REJECTED = "REJECTED"
    ABORTED = "ABORTED"
    FAILED = "FAILED"


class ExecutionResult(BaseModel):
    """Structured outcome of one execution attempt, with a display message"""
    success: bool
    outcome: TradeOutcome
    message: str
    action: str
    user_id: str
    instrument_id: Optional[int] = None
    ticker: Optional[str] = None
    shares: Optional[float] = None
    price_used: Optional[float] = None
    price_source: Optional[str] = None
    amount: Optional[float] = None
    balance_before: Optional[float] = None
    balance_after: Optional[float] = None
    cost_basis_removed: Optional[float] = None
    realized_gain: Optional[float] = None
    transaction_id: Optional[int] = None
    error_code: Optional[str] = None

    @property
    def traded(self) -> bool:
        return self.outcome == TradeOutcome.EXECUTED


class TradeExecutionEngine:
    """Executes BUY/SELL/HOLD decisions for one account at a time"""

    def __init__(self, store: LedgerStore, price_source: PriceSource):
        self.store = store
        self.price_source = price_source

    def execute(
        self,
        account: Account,
        decision: Union[BuyDecision, SellDecision, HoldDecision],
        snapshot: Optional[MarketSnapshot] = None
    ) -> ExecutionResult:
        """
        Execute a decision against the ledger.

        Args:
            account: Account the decision belongs to (re-read before use)
            decision: Sanitized decision
            snapshot: Snapshot the decision was made from, used to flag price drift

        Returns:
            ExecutionResult; success is False for rejected, aborted or failed trades
        """
        fresh = self.store.get_account(account.user_id)
        if fresh is None:
            return ExecutionResult(
                success=False, outcome=TradeOutcome.FAILED, action=decision.action,
                user_id=account.user_id, error_code='ACCOUNT_NOT_FOUND',
                message=f"Account not found: {account.user_id}",
            )

        name = fresh.label
        cash = fresh.available_cash

        if isinstance(decision, HoldDecision):
            if decision.failed:
                return ExecutionResult(
                    success=False, outcome=TradeOutcome.FAILED, action='HOLD', user_id=fresh.user_id,
                    balance_before=cash, balance_after=cash, error_code='DECISION_FAILED',
                    message=decision.rationale or "Decision failed",
                )
            return ExecutionResult(
                success=True, outcome=TradeOutcome.HELD, action='HOLD', user_id=fresh.user_id,
                instrument_id=decision.instrument_id, balance_before=cash, balance_after=cash,
                message="Holding position",
            )

        base = dict(
            action=decision.action, user_id=fresh.user_id, instrument_id=decision.instrument_id,
            shares=decision.shares, balance_before=cash, balance_after=cash,
        )

        instrument = self.store.get_instrument(decision.instrument_id)
        # A delisted instrument can still be sold out of, never bought
        if instrument is None or (decision.action == 'BUY' and not instrument.is_tradable):
            return ExecutionResult(
                success=False, outcome=TradeOutcome.REJECTED, error_code='UNKNOWN_INSTRUMENT',
                message=f"Invalid pitch_id: {decision.instrument_id}", **base,
            )
        base['ticker'] = instrument.ticker

        try:
            quote = self.price_source.get_quote(instrument.ticker)
        except PriceUnavailableError as e:
            logger.error(f"Aborting {decision.action} for {name}: {e}")
            return ExecutionResult(
                success=False, outcome=TradeOutcome.ABORTED, error_code='PRICE_UNAVAILABLE',
                message=f"No price available for {instrument.ticker}; trade aborted", **base,
            )

        self._check_drift(snapshot, decision.instrument_id, quote.price, instrument.ticker)

        receipt = self.store.execute_trade(
            fresh.user_id, decision.instrument_id, decision.shares, quote.price, decision.action
        )
        base.update(price_used=quote.price, price_source=quote.source)

        if not receipt.success:
            return self._rejection(name, instrument.ticker, receipt, base)

        base.update(
            shares=receipt.shares,
            amount=receipt.amount,
            balance_before=receipt.balance_before,
            balance_after=receipt.new_balance,
            cost_basis_removed=receipt.cost_basis_removed,
            realized_gain=receipt.realized_gain,
            transaction_id=receipt.transaction_id,
        )

        if decision.action == 'BUY':
            message = (
                f"{name} bought {receipt.shares:.2f} shares of {instrument.company_name} "
                f"({instrument.ticker}) for ${receipt.amount:,.2f} MTK"
            )
        else:
            gain = receipt.realized_gain or 0.0
            message = (
                f"{name} sold {receipt.shares:.2f} shares of {instrument.company_name} "
                f"({instrument.ticker}) for ${receipt.amount:,.2f} MTK "
                f"(realized {'gain' if gain >= 0 else 'loss'} ${abs(gain):,.2f})"
            )

        return ExecutionResult(success=True, outcome=TradeOutcome.EXECUTED, message=message, **base)

    def _rejection(self, name: str, ticker: str, receipt: TradeReceipt, base: dict) -> ExecutionResult:
        code = receipt.error_code
        if receipt.balance_before is not None:
            base.update(balance_before=receipt.balance_before, balance_after=receipt.balance_before)

        if code == 'INSUFFICIENT_FUNDS':
            message = (
                f"{name} tried to overspend: {receipt.shares:.2f} shares of {ticker} at ${receipt.price:.2f} "
                f"= ${receipt.amount:,.2f} MTK but only has ${receipt.balance_before:,.2f} MTK. "
                f"Max affordable: {receipt.max_affordable_shares:.2f} shares"
            )
        elif code in ('NO_HOLDING', 'INSUFFICIENT_SHARES'):
            message = f"{name} cannot sell {ticker}: {receipt.error_message}"
        else:
            message = receipt.error_message or "Trade rejected"

        outcome = TradeOutcome.FAILED if code == 'DATASTORE_ERROR' else TradeOutcome.REJECTED
        logger.warning(f"Trade rejected for {name} ({code}): {message}")
        return ExecutionResult(success=False, outcome=outcome, error_code=code, message=message, **base)

    def _check_drift(self, snapshot: Optional[MarketSnapshot], instrument_id: int, price: float, ticker: str):
        if snapshot is None:
            return
        seen = snapshot.instrument(instrument_id)
        if seen is None or not seen.price:
            return
        drift = abs(price - seen.price) / seen.price * 100
        if drift >= PRICE_DRIFT_WARN_PCT:
            logger.warning(
                f"{ticker} moved {drift:.1f}% between snapshot (${seen.price:.2f}) and execution (${price:.2f})"
            )
