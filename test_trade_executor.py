"""
Unit tests for the Trade Execution Engine.

Tests the VALIDATE -> APPLY -> RECORD pipeline:
- Overspend and oversell rejection with balances unchanged
- Holding merge on repeat buys and proportional cost-basis removal on sells
- Holding row deletion on full exit
- Aborts when no price resolves
- No double-spend under concurrent execution
"""

import threading

import pytest

from conftest import StaticPriceSource
from unicorn_trader.execution.trade_executor import TradeExecutionEngine, TradeOutcome
from unicorn_trader.ledger.instruments import HM14_INSTRUMENTS
from unicorn_trader.ledger.ledger_store import LedgerStore
from unicorn_trader.market.snapshot_builder import MarketSnapshotBuilder
from unicorn_trader.trader.decision import BuyDecision, HoldDecision, SellDecision, failed_hold


@pytest.fixture
def ledger(db_path):
    """Ledger whose new accounts start with 100,000 MTK"""
    store = LedgerStore(db_path, starting_balance=100_000.0)
    store.seed_instruments()
    return store


@pytest.fixture
def account(ledger):
    return ledger.provision_persona(user_id="ai_oracle", display_name="The Oracle", strategy="PERFECT_TIMING")


@pytest.fixture
def price_source():
    return StaticPriceSource({'META': 50.0, 'MSFT': 400.0})


@pytest.fixture
def engine(ledger, price_source):
    return TradeExecutionEngine(ledger, price_source)


class TestBuy:
    """BUY validation and application"""

    def test_overspend_rejected_with_max_affordable(self, engine, ledger, account):
        result = engine.execute(account, BuyDecision(instrument_id=1, shares=3000))

        assert result.success is False
        assert result.outcome == TradeOutcome.REJECTED
        assert result.error_code == 'INSUFFICIENT_FUNDS'
        assert "Max affordable: 2000.00 shares" in result.message
        assert result.balance_after == pytest.approx(100_000.0)

        after = ledger.require_account(account.user_id)
        assert after.available_cash == pytest.approx(100_000.0)
        assert ledger.get_holdings(account.user_id) == []
        assert ledger.get_transactions(account.user_id) == []

    def test_buy_creates_holding(self, engine, ledger, account):
        result = engine.execute(account, BuyDecision(instrument_id=1, shares=100, rationale="Go"))

        assert result.success is True
        assert result.outcome == TradeOutcome.EXECUTED
        assert result.traded is True
        assert result.amount == pytest.approx(5_000.0)
        assert result.balance_after == pytest.approx(95_000.0)
        assert result.price_source == 'live'
        assert "bought 100.00 shares of Meta Platforms (META)" in result.message

        holding = ledger.get_holding(account.user_id, 1)
        assert holding.shares_owned == pytest.approx(100)
        assert holding.cost_basis == pytest.approx(5_000.0)
        assert holding.avg_purchase_price == pytest.approx(50.0)
        assert ledger.require_account(account.user_id).total_invested == pytest.approx(5_000.0)

    def test_repeat_buy_merges_holding(self, engine, ledger, account, price_source):
        engine.execute(account, BuyDecision(instrument_id=1, shares=10))
        price_source.prices['META'] = 100.0
        engine.execute(account, BuyDecision(instrument_id=1, shares=10))

        [holding] = ledger.get_holdings(account.user_id)
        assert holding.shares_owned == pytest.approx(20)
        assert holding.cost_basis == pytest.approx(1_500.0)
        assert holding.avg_purchase_price == pytest.approx(75.0)


class TestSell:
    """SELL validation, proportional cost basis and cleanup"""

    def test_sell_out_of_untradable_instrument(self, engine, ledger, account):
        engine.execute(account, BuyDecision(instrument_id=1, shares=10))
        ledger.seed_instruments([HM14_INSTRUMENTS[0].model_copy(update={'is_tradable': False})])

        blocked = engine.execute(account, BuyDecision(instrument_id=1, shares=1))
        assert blocked.outcome == TradeOutcome.REJECTED
        assert blocked.error_code == 'UNKNOWN_INSTRUMENT'

        result = engine.execute(account, SellDecision(instrument_id=1, shares=10))
        assert result.outcome == TradeOutcome.EXECUTED
        assert ledger.get_holding(account.user_id, 1) is None
        assert ledger.require_account(account.user_id).available_cash == pytest.approx(100_000.0)

    def test_partial_sell_removes_proportional_basis(self, engine, ledger, account, price_source):
        engine.execute(account, BuyDecision(instrument_id=1, shares=100))
        price_source.prices['META'] = 60.0

        result = engine.execute(account, SellDecision(instrument_id=1, shares=40))

        assert result.success is True
        assert result.amount == pytest.approx(2_400.0)
        assert result.cost_basis_removed == pytest.approx(2_000.0)
        assert result.realized_gain == pytest.approx(400.0)
        assert "realized gain $400.00" in result.message

        holding = ledger.get_holding(account.user_id, 1)
        assert holding.shares_owned == pytest.approx(60)
        assert holding.cost_basis == pytest.approx(3_000.0)

        after = ledger.require_account(account.user_id)
        assert after.available_cash == pytest.approx(97_400.0)
        assert after.total_invested == pytest.approx(3_000.0)

    def test_full_sell_deletes_holding(self, engine, ledger, account, price_source):
        engine.execute(account, BuyDecision(instrument_id=1, shares=100))
        price_source.prices['META'] = 45.0

        result = engine.execute(account, SellDecision(instrument_id=1, shares=100))

        assert result.success is True
        assert result.realized_gain == pytest.approx(-500.0)
        assert "realized loss $500.00" in result.message
        assert ledger.get_holding(account.user_id, 1) is None
        assert ledger.require_account(account.user_id).total_invested == pytest.approx(0.0)

    def test_oversell_rejected(self, engine, ledger, account):
        engine.execute(account, BuyDecision(instrument_id=1, shares=10))

        result = engine.execute(account, SellDecision(instrument_id=1, shares=11))

        assert result.outcome == TradeOutcome.REJECTED
        assert result.error_code == 'INSUFFICIENT_SHARES'
        assert "cannot sell META" in result.message
        assert ledger.get_holding(account.user_id, 1).shares_owned == pytest.approx(10)
        assert ledger.require_account(account.user_id).available_cash == pytest.approx(99_500.0)

    def test_sell_without_holding(self, engine, account):
        result = engine.execute(account, SellDecision(instrument_id=2, shares=1))
        assert result.outcome == TradeOutcome.REJECTED
        assert result.error_code == 'NO_HOLDING'


class TestNonTrades:
    """HOLD, unknown instruments and missing prices"""

    def test_hold(self, engine, account):
        result = engine.execute(account, HoldDecision(rationale="Waiting"))
        assert result.success is True
        assert result.outcome == TradeOutcome.HELD
        assert result.traded is False
        assert result.message == "Holding position"

    def test_failed_hold_is_not_success(self, engine, account):
        result = engine.execute(account, failed_hold("provider timeout"))
        assert result.success is False
        assert result.outcome == TradeOutcome.FAILED
        assert result.error_code == 'DECISION_FAILED'
        assert "Technical difficulties" in result.message

    def test_unknown_instrument(self, engine, account):
        result = engine.execute(account, BuyDecision(instrument_id=99, shares=1))
        assert result.outcome == TradeOutcome.REJECTED
        assert result.message == "Invalid pitch_id: 99"

    def test_no_price_aborts(self, engine, ledger, account):
        # GRAB (id 5) has no price in the static source
        result = engine.execute(account, BuyDecision(instrument_id=5, shares=10))

        assert result.success is False
        assert result.outcome == TradeOutcome.ABORTED
        assert result.error_code == 'PRICE_UNAVAILABLE'
        assert ledger.require_account(account.user_id).available_cash == pytest.approx(100_000.0)
        assert ledger.get_transactions(account.user_id) == []

    def test_missing_account(self, engine, account, ledger):
        ghost = account.model_copy(update={'user_id': 'ghost'})
        result = engine.execute(ghost, BuyDecision(instrument_id=1, shares=1))
        assert result.outcome == TradeOutcome.FAILED
        assert result.error_code == 'ACCOUNT_NOT_FOUND'


class TestLedgerInvariants:
    """Properties that must hold across sequences of trades"""

    def test_cost_basis_conserved(self, engine, ledger, account, price_source):
        steps = [
            (BuyDecision(instrument_id=1, shares=100), 50.0),
            (BuyDecision(instrument_id=2, shares=20), 400.0),
            (SellDecision(instrument_id=1, shares=30), 55.0),
            (BuyDecision(instrument_id=1, shares=15), 48.0),
            (SellDecision(instrument_id=2, shares=20), 390.0),
        ]
        results = []
        for decision, meta_or_msft_price in steps:
            ticker = 'META' if decision.instrument_id == 1 else 'MSFT'
            price_source.prices[ticker] = meta_or_msft_price
            result = engine.execute(account, decision)
            assert result.success is True
            results.append(result)

        # Sells remove basis in proportion to the shares sold
        meta_sell, msft_sell = results[2], results[4]
        assert meta_sell.cost_basis_removed == pytest.approx(1_500.0)
        assert meta_sell.realized_gain == pytest.approx(150.0)
        assert msft_sell.cost_basis_removed == pytest.approx(8_000.0)
        assert msft_sell.realized_gain == pytest.approx(-200.0)

        meta = ledger.get_holding(account.user_id, 1)
        assert meta.shares_owned == pytest.approx(85.0)
        assert meta.cost_basis == pytest.approx(5_000.0 - 1_500.0 + 720.0)
        assert ledger.get_holding(account.user_id, 2) is None

        after = ledger.require_account(account.user_id)
        holdings = ledger.get_holdings(account.user_id)
        assert after.total_invested == pytest.approx(4_220.0)
        assert after.total_invested == pytest.approx(sum(h.cost_basis for h in holdings))
        assert after.available_cash == pytest.approx(100_000.0 - 5_000 - 8_000 + 1_650 - 720 + 7_800)

    def test_concurrent_buys_never_overdraw(self, engine, ledger, account):
        results = []
        lock = threading.Lock()

        def buy():
            result = engine.execute(account, BuyDecision(instrument_id=1, shares=300))
            with lock:
                results.append(result)

        threads = [threading.Thread(target=buy) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        executed = [r for r in results if r.success]
        rejected = [r for r in results if r.error_code == 'INSUFFICIENT_FUNDS']
        # 100,000 / (300 x $50) leaves room for exactly six fills
        assert len(executed) == 6
        assert len(rejected) == 4

        after = ledger.require_account(account.user_id)
        assert after.available_cash == pytest.approx(10_000.0)
        assert ledger.get_holding(account.user_id, 1).shares_owned == pytest.approx(1_800)
        assert len(ledger.get_transactions(account.user_id)) == 6

    def test_snapshot_drift_does_not_block_trade(self, engine, ledger, account, price_source):
        snapshot = MarketSnapshotBuilder(ledger, price_source).build_snapshot(account)
        price_source.prices['META'] = 80.0

        result = engine.execute(account, BuyDecision(instrument_id=1, shares=10), snapshot)
        assert result.success is True
        assert result.price_used == pytest.approx(80.0)
