"""
Ledger Store: SQLite-backed accounts, instruments, holdings and transactions.

This module owns every write to the financial ledger:
- Account provisioning (humans on first trade, AI personas explicitly)
- The atomic execute_trade procedure (validate, apply, record in one transaction)
- Account reset and persona cloning
- Reference price persistence for the quote fallback chain

Current market value is never stored; callers recompute it from a live or
fallback price at read time.
"""

import logging
import math
import sqlite3
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from .instruments import HM14_INSTRUMENTS
from .models import (
    CASH_EPSILON,
    SHARE_EPSILON,
    Account,
    Holding,
    Instrument,
    TradeReceipt,
    TradeSide,
    TransactionRecord,
)

logger = logging.getLogger(__name__)


class AccountNotFoundError(Exception):
    """Raised when an account id has no row in user_token_balances"""


class LedgerStore:
    """
    Accounts, holdings and transaction history in one SQLite database.

    Every public method opens its own connection, so a single store can be
    shared across threads.
    """

    def __init__(self, db_path: str, starting_balance: float = 1_000_000.0, busy_timeout: float = 10.0):
        """
        Args:
            db_path: Path to SQLite database file
            starting_balance: MTK granted to newly created or reset accounts
            busy_timeout: Seconds to wait for the write lock
        """
        self.db_path = db_path
        self.starting_balance = starting_balance
        self.busy_timeout = busy_timeout
        self._ensure_database()
        logger.info(f"LedgerStore initialized with database: {db_path}")

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=self.busy_timeout)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    def _ensure_database(self):
        """Create database and tables if they don't exist"""
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        conn = self._connect()
        try:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS user_token_balances (
                    user_id TEXT PRIMARY KEY,
                    user_email TEXT,
                    display_name TEXT,
                    is_ai_investor INTEGER NOT NULL DEFAULT 0,
                    is_active INTEGER NOT NULL DEFAULT 1,
                    ai_strategy TEXT,
                    ai_catchphrase TEXT,
                    ai_personality_prompt TEXT,
                    ai_emoji TEXT,
                    available_tokens REAL NOT NULL CHECK(available_tokens >= 0),
                    total_tokens REAL NOT NULL,
                    total_invested REAL NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS pitch_market_data (
                    pitch_id INTEGER PRIMARY KEY,
                    ticker TEXT NOT NULL UNIQUE,
                    company_name TEXT NOT NULL,
                    category TEXT,
                    elevator_pitch TEXT,
                    founder_story TEXT,
                    fun_fact TEXT,
                    current_price REAL CHECK(current_price IS NULL OR current_price > 0),
                    price_change_24h REAL,
                    is_tradable INTEGER NOT NULL DEFAULT 1,
                    updated_at TEXT
                );

                CREATE TABLE IF NOT EXISTS user_investments (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL REFERENCES user_token_balances(user_id) ON DELETE CASCADE,
                    pitch_id INTEGER NOT NULL REFERENCES pitch_market_data(pitch_id),
                    shares_owned REAL NOT NULL CHECK(shares_owned > 0),
                    total_invested REAL NOT NULL CHECK(total_invested >= 0),
                    avg_purchase_price REAL NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    UNIQUE(user_id, pitch_id)
                );

                CREATE TABLE IF NOT EXISTS investment_transactions (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL REFERENCES user_token_balances(user_id) ON DELETE CASCADE,
                    pitch_id INTEGER NOT NULL REFERENCES pitch_market_data(pitch_id),
                    transaction_type TEXT NOT NULL CHECK(transaction_type IN ('BUY', 'SELL')),
                    shares REAL NOT NULL CHECK(shares > 0),
                    price_per_share REAL NOT NULL CHECK(price_per_share > 0),
                    total_amount REAL NOT NULL,
                    balance_before REAL NOT NULL,
                    balance_after REAL NOT NULL,
                    cost_basis_removed REAL,
                    realized_gain REAL,
                    timestamp TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_investments_user ON user_investments(user_id);
                CREATE INDEX IF NOT EXISTS idx_transactions_user ON investment_transactions(user_id, timestamp);
                CREATE INDEX IF NOT EXISTS idx_balances_ai ON user_token_balances(is_ai_investor, is_active);
            """)
            conn.commit()
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Instruments
    # ------------------------------------------------------------------

    def seed_instruments(self, instruments: Optional[List[Instrument]] = None) -> int:
        """
        Insert or refresh the instrument catalog.

        Metadata is overwritten; an existing reference price is kept.
        """
        instruments = instruments if instruments is not None else HM14_INSTRUMENTS
        now = datetime.now().isoformat()

        conn = self._connect()
        try:
            for inst in instruments:
                conn.execute("""
                    INSERT INTO pitch_market_data (
                        pitch_id, ticker, company_name, category, elevator_pitch,
                        founder_story, fun_fact, current_price, price_change_24h,
                        is_tradable, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(pitch_id) DO UPDATE SET
                        ticker = excluded.ticker,
                        company_name = excluded.company_name,
                        category = excluded.category,
                        elevator_pitch = excluded.elevator_pitch,
                        founder_story = excluded.founder_story,
                        fun_fact = excluded.fun_fact,
                        is_tradable = excluded.is_tradable,
                        current_price = COALESCE(pitch_market_data.current_price, excluded.current_price)
                """, (
                    inst.instrument_id, inst.ticker.upper(), inst.company_name, inst.category,
                    inst.elevator_pitch, inst.founder_story, inst.fun_fact,
                    inst.reference_price, inst.price_change_24h, int(inst.is_tradable), now
                ))
            conn.commit()
        finally:
            conn.close()

        logger.info(f"Seeded {len(instruments)} instruments")
        return len(instruments)

    def list_instruments(self, tradable_only: bool = True) -> List[Instrument]:
        conn = self._connect()
        try:
            query = "SELECT * FROM pitch_market_data"
            if tradable_only:
                query += " WHERE is_tradable = 1"
            rows = conn.execute(query + " ORDER BY pitch_id").fetchall()
        finally:
            conn.close()
        return [self._row_to_instrument(row) for row in rows]

    def get_instrument(self, instrument_id: int) -> Optional[Instrument]:
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT * FROM pitch_market_data WHERE pitch_id = ?", (instrument_id,)
            ).fetchone()
        finally:
            conn.close()
        return self._row_to_instrument(row) if row else None

    def get_instrument_by_ticker(self, ticker: str) -> Optional[Instrument]:
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT * FROM pitch_market_data WHERE ticker = ?", (ticker.upper(),)
            ).fetchone()
        finally:
            conn.close()
        return self._row_to_instrument(row) if row else None

    def get_reference_price(self, ticker: str) -> Optional[float]:
        """Last persisted price for a ticker, or None"""
        instrument = self.get_instrument_by_ticker(ticker)
        if instrument is None:
            return None
        return instrument.reference_price

    def update_reference_price(self, ticker: str, price: float, change_pct: Optional[float] = None) -> bool:
        """Persist a fresh reference price; returns False for unknown tickers"""
        if not price or price <= 0:
            raise ValueError(f"Reference price must be positive, got {price}")

        conn = self._connect()
        try:
            cursor = conn.execute("""
                UPDATE pitch_market_data
                SET current_price = ?, price_change_24h = COALESCE(?, price_change_24h), updated_at = ?
                WHERE ticker = ?
            """, (price, change_pct, datetime.now().isoformat(), ticker.upper()))
            conn.commit()
            updated = cursor.rowcount > 0
        finally:
            conn.close()

        if not updated:
            logger.warning(f"No instrument with ticker {ticker}; reference price not stored")
        return updated

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def get_account(self, user_id: str) -> Optional[Account]:
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT * FROM user_token_balances WHERE user_id = ?", (user_id,)
            ).fetchone()
        finally:
            conn.close()
        return self._row_to_account(row) if row else None

    def require_account(self, user_id: str) -> Account:
        account = self.get_account(user_id)
        if account is None:
            raise AccountNotFoundError(f"Account not found: {user_id}")
        return account

    def get_or_create_account(self, user_id: str, email: Optional[str] = None,
                              display_name: Optional[str] = None) -> Account:
        """Human accounts are created with the starting balance on first use"""
        now = datetime.now().isoformat()
        conn = self._connect()
        try:
            cursor = conn.execute("""
                INSERT OR IGNORE INTO user_token_balances (
                    user_id, user_email, display_name, is_ai_investor, is_active,
                    available_tokens, total_tokens, total_invested, created_at, updated_at
                ) VALUES (?, ?, ?, 0, 1, ?, ?, 0, ?, ?)
            """, (user_id, email, display_name, self.starting_balance, self.starting_balance, now, now))
            conn.commit()
            if cursor.rowcount:
                logger.info(f"Created account {user_id} with {self.starting_balance:,.0f} MTK")
        finally:
            conn.close()
        return self.require_account(user_id)

    def provision_persona(
        self,
        user_id: str,
        display_name: str,
        strategy: str,
        catchphrase: Optional[str] = None,
        emoji: Optional[str] = None,
        personality_prompt: Optional[str] = None,
        is_active: bool = True
    ) -> Account:
        """
        Create an AI persona, or update its profile if it already exists.

        Balances of an existing persona are left untouched.
        """
        now = datetime.now().isoformat()
        conn = self._connect()
        try:
            conn.execute("""
                INSERT INTO user_token_balances (
                    user_id, display_name, is_ai_investor, is_active, ai_strategy,
                    ai_catchphrase, ai_personality_prompt, ai_emoji,
                    available_tokens, total_tokens, total_invested, created_at, updated_at
                ) VALUES (?, ?, 1, ?, ?, ?, ?, ?, ?, ?, 0, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    display_name = excluded.display_name,
                    is_ai_investor = 1,
                    is_active = excluded.is_active,
                    ai_strategy = excluded.ai_strategy,
                    ai_catchphrase = excluded.ai_catchphrase,
                    ai_personality_prompt = excluded.ai_personality_prompt,
                    ai_emoji = excluded.ai_emoji,
                    updated_at = excluded.updated_at
            """, (
                user_id, display_name, int(is_active), strategy, catchphrase, personality_prompt, emoji,
                self.starting_balance, self.starting_balance, now, now
            ))
            conn.commit()
        finally:
            conn.close()

        logger.info(f"Provisioned persona {display_name} ({user_id}) with strategy {strategy}")
        return self.require_account(user_id)

    def list_personas(self, active_only: bool = True) -> List[Account]:
        conn = self._connect()
        try:
            query = "SELECT * FROM user_token_balances WHERE is_ai_investor = 1"
            if active_only:
                query += " AND is_active = 1"
            rows = conn.execute(query + " ORDER BY display_name, user_id").fetchall()
        finally:
            conn.close()
        return [self._row_to_account(row) for row in rows]

    def update_persona(
        self,
        user_id: str,
        is_active: Optional[bool] = None,
        strategy: Optional[str] = None,
        personality_prompt: Optional[str] = None,
        catchphrase: Optional[str] = None
    ) -> Account:
        """
        Change a persona's settings. Fields left as None are untouched; an
        empty personality prompt clears the custom prompt.

        Raises:
            AccountNotFoundError: Unknown account id
            ValueError: Account is not an AI persona, or nothing to update
        """
        account = self.require_account(user_id)
        if not account.is_ai_investor:
            raise ValueError(f"Account {user_id} is not an AI persona")

        updates: Dict[str, Any] = {}
        if is_active is not None:
            updates['is_active'] = int(is_active)
        if strategy is not None:
            updates['ai_strategy'] = strategy
        if personality_prompt is not None:
            updates['ai_personality_prompt'] = personality_prompt or None
        if catchphrase is not None:
            updates['ai_catchphrase'] = catchphrase
        if not updates:
            raise ValueError("No persona settings to update")

        updates['updated_at'] = datetime.now().isoformat()
        assignments = ", ".join(f"{column} = ?" for column in updates)
        conn = self._connect()
        try:
            conn.execute(
                f"UPDATE user_token_balances SET {assignments} WHERE user_id = ?",
                (*updates.values(), user_id)
            )
            conn.commit()
        finally:
            conn.close()

        logger.info(f"Updated persona {user_id}: {sorted(k for k in updates if k != 'updated_at')}")
        return self.require_account(user_id)

    def set_active(self, user_id: str, active: bool) -> Account:
        return self.update_persona(user_id, is_active=active)

    def reset_account(self, user_id: str) -> Account:
        """
        Restore the starting balance and wipe holdings and transaction history.

        Runs as one transaction so a reset is never half-applied.
        """
        now = datetime.now().isoformat()
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            cursor = conn.execute("""
                UPDATE user_token_balances
                SET available_tokens = ?, total_tokens = ?, total_invested = 0, updated_at = ?
                WHERE user_id = ?
            """, (self.starting_balance, self.starting_balance, now, user_id))
            if cursor.rowcount == 0:
                conn.rollback()
                raise AccountNotFoundError(f"Account not found: {user_id}")
            holdings = conn.execute("DELETE FROM user_investments WHERE user_id = ?", (user_id,)).rowcount
            transactions = conn.execute(
                "DELETE FROM investment_transactions WHERE user_id = ?", (user_id,)
            ).rowcount
            conn.commit()
        finally:
            conn.close()

        logger.info(f"Reset account {user_id}: removed {holdings} holdings, {transactions} transactions")
        return self.require_account(user_id)

    def clone_persona(self, user_id: str) -> Account:
        """Copy a persona's profile into a new persona with a fresh balance"""
        source = self.require_account(user_id)
        if not source.is_ai_investor:
            raise ValueError(f"Account {user_id} is not an AI persona")

        clone_id = f"ai_clone_{int(time.time() * 1000)}"
        return self.provision_persona(
            user_id=clone_id,
            display_name=f"{source.label} 2",
            strategy=source.ai_strategy or "",
            catchphrase=source.ai_catchphrase,
            emoji=source.ai_emoji,
            personality_prompt=source.ai_personality_prompt,
        )

    # ------------------------------------------------------------------
    # Holdings and transactions
    # ------------------------------------------------------------------

    def get_holdings(self, user_id: str) -> List[Holding]:
        conn = self._connect()
        try:
            rows = conn.execute(
                "SELECT * FROM user_investments WHERE user_id = ? ORDER BY pitch_id", (user_id,)
            ).fetchall()
        finally:
            conn.close()
        return [self._row_to_holding(row) for row in rows]

    def get_holding(self, user_id: str, instrument_id: int) -> Optional[Holding]:
        conn = self._connect()
        try:
            row = conn.execute(
                "SELECT * FROM user_investments WHERE user_id = ? AND pitch_id = ?",
                (user_id, instrument_id)
            ).fetchone()
        finally:
            conn.close()
        return self._row_to_holding(row) if row else None

    def get_transactions(self, user_id: str, limit: Optional[int] = 50) -> List[TransactionRecord]:
        conn = self._connect()
        try:
            query = "SELECT * FROM investment_transactions WHERE user_id = ? ORDER BY id DESC"
            params: tuple = (user_id,)
            if limit:
                query += " LIMIT ?"
                params = (user_id, limit)
            rows = conn.execute(query, params).fetchall()
        finally:
            conn.close()
        return [self._row_to_transaction(row) for row in rows]

    # ------------------------------------------------------------------
    # Atomic trade procedure
    # ------------------------------------------------------------------

    def execute_trade(self, user_id: str, instrument_id: int, shares: float,
                      price: float, side: TradeSide) -> TradeReceipt:
        """
        Validate, apply and record one trade as a single transaction.

        BEGIN IMMEDIATE takes the database write lock before the balance and
        holding are read, so two concurrent trades on the same account can
        never both spend the same cash. Any rejection or error rolls back,
        leaving cash and holdings unchanged.

        Args:
            user_id: Account id
            instrument_id: pitch_id of the instrument
            shares: Shares to buy or sell (> 0)
            price: Price per share resolved by the caller (> 0)
            side: 'BUY' or 'SELL'

        Returns:
            TradeReceipt; success is False with error_code set on rejection
        """
        if side not in ('BUY', 'SELL'):
            raise ValueError(f"Unknown trade side: {side}")

        receipt = TradeReceipt(
            success=False, side=side, user_id=user_id, instrument_id=instrument_id,
            shares=shares, price=price
        )

        if not isinstance(shares, (int, float)) or not math.isfinite(shares) or shares <= 0:
            return receipt.model_copy(update={
                'error_code': 'INVALID_SHARES',
                'error_message': f"Share quantity must be positive, got {shares}",
            })
        if not isinstance(price, (int, float)) or not math.isfinite(price) or price <= 0:
            return receipt.model_copy(update={
                'error_code': 'INVALID_PRICE',
                'error_message': f"Price must be positive, got {price}",
            })

        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")

            account_row = conn.execute(
                "SELECT available_tokens FROM user_token_balances WHERE user_id = ?", (user_id,)
            ).fetchone()
            if account_row is None:
                conn.rollback()
                return receipt.model_copy(update={
                    'error_code': 'ACCOUNT_NOT_FOUND',
                    'error_message': f"Account not found: {user_id}",
                })

            if conn.execute(
                "SELECT 1 FROM pitch_market_data WHERE pitch_id = ?", (instrument_id,)
            ).fetchone() is None:
                conn.rollback()
                return receipt.model_copy(update={
                    'error_code': 'UNKNOWN_INSTRUMENT',
                    'error_message': f"Unknown instrument id {instrument_id}",
                })

            cash = account_row['available_tokens']
            holding_row = conn.execute(
                "SELECT * FROM user_investments WHERE user_id = ? AND pitch_id = ?",
                (user_id, instrument_id)
            ).fetchone()
            now = datetime.now().isoformat()

            if side == 'BUY':
                cost = shares * price
                if cost > cash + CASH_EPSILON:
                    conn.rollback()
                    return receipt.model_copy(update={
                        'error_code': 'INSUFFICIENT_FUNDS',
                        'error_message': f"Insufficient funds: cost ${cost:,.2f} exceeds available ${cash:,.2f}",
                        'amount': cost,
                        'balance_before': cash,
                        'new_balance': cash,
                        'max_affordable_shares': math.floor(cash / price * 100) / 100,
                    })

                new_cash = max(0.0, cash - cost)
                if holding_row is not None:
                    new_shares = holding_row['shares_owned'] + shares
                    new_basis = holding_row['total_invested'] + cost
                    conn.execute("""
                        UPDATE user_investments
                        SET shares_owned = ?, total_invested = ?, avg_purchase_price = ?, updated_at = ?
                        WHERE id = ?
                    """, (new_shares, new_basis, new_basis / new_shares, now, holding_row['id']))
                else:
                    new_shares = shares
                    conn.execute("""
                        INSERT INTO user_investments (
                            user_id, pitch_id, shares_owned, total_invested, avg_purchase_price,
                            created_at, updated_at
                        ) VALUES (?, ?, ?, ?, ?, ?, ?)
                    """, (user_id, instrument_id, shares, cost, price, now, now))

                conn.execute("""
                    UPDATE user_token_balances
                    SET available_tokens = ?, total_invested = total_invested + ?, updated_at = ?
                    WHERE user_id = ?
                """, (new_cash, cost, now, user_id))

                amount = cost
                traded_shares = shares
                cost_basis_removed = None
                realized_gain = None
                shares_remaining = new_shares

            else:
                if holding_row is None:
                    conn.rollback()
                    return receipt.model_copy(update={
                        'error_code': 'NO_HOLDING',
                        'error_message': f"No shares of instrument {instrument_id} to sell",
                        'balance_before': cash,
                        'new_balance': cash,
                        'shares_owned': 0.0,
                    })

                owned = holding_row['shares_owned']
                if shares > owned + SHARE_EPSILON:
                    conn.rollback()
                    return receipt.model_copy(update={
                        'error_code': 'INSUFFICIENT_SHARES',
                        'error_message': f"Insufficient shares: has {owned:.2f}, tried to sell {shares:.2f}",
                        'balance_before': cash,
                        'new_balance': cash,
                        'shares_owned': owned,
                    })

                traded_shares = min(shares, owned)
                amount = traded_shares * price
                basis = holding_row['total_invested']
                shares_remaining = owned - traded_shares

                if shares_remaining <= SHARE_EPSILON:
                    shares_remaining = 0.0
                    cost_basis_removed = basis
                    conn.execute("DELETE FROM user_investments WHERE id = ?", (holding_row['id'],))
                else:
                    cost_basis_removed = basis * (traded_shares / owned)
                    conn.execute("""
                        UPDATE user_investments
                        SET shares_owned = ?, total_invested = ?, updated_at = ?
                        WHERE id = ?
                    """, (shares_remaining, basis - cost_basis_removed, now, holding_row['id']))

                realized_gain = amount - cost_basis_removed
                new_cash = cash + amount
                conn.execute("""
                    UPDATE user_token_balances
                    SET available_tokens = ?, total_invested = MAX(0, total_invested - ?), updated_at = ?
                    WHERE user_id = ?
                """, (new_cash, cost_basis_removed, now, user_id))

            cursor = conn.execute("""
                INSERT INTO investment_transactions (
                    user_id, pitch_id, transaction_type, shares, price_per_share, total_amount,
                    balance_before, balance_after, cost_basis_removed, realized_gain, timestamp
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                user_id, instrument_id, side, traded_shares, price, amount,
                cash, new_cash, cost_basis_removed, realized_gain, now
            ))
            transaction_id = cursor.lastrowid
            conn.commit()

        except sqlite3.Error as e:
            conn.rollback()
            logger.error(f"Trade {side} {shares} x {instrument_id} for {user_id} failed: {e}")
            return receipt.model_copy(update={
                'error_code': 'DATASTORE_ERROR',
                'error_message': f"Trade not applied: {e}",
            })
        finally:
            conn.close()

        logger.info(
            f"{side} {traded_shares:.4f} x {instrument_id} @ ${price:.2f} for {user_id}: "
            f"cash {cash:,.2f} -> {new_cash:,.2f}"
        )

        return receipt.model_copy(update={
            'success': True,
            'shares': traded_shares,
            'amount': amount,
            'balance_before': cash,
            'new_balance': new_cash,
            'cost_basis_removed': cost_basis_removed,
            'realized_gain': realized_gain,
            'shares_remaining': shares_remaining,
            'transaction_id': transaction_id,
        })

    # ------------------------------------------------------------------
    # Row converters
    # ------------------------------------------------------------------

    def _row_to_account(self, row: sqlite3.Row) -> Account:
        return Account(
            user_id=row['user_id'],
            email=row['user_email'],
            display_name=row['display_name'],
            is_ai_investor=bool(row['is_ai_investor']),
            is_active=bool(row['is_active']),
            ai_strategy=row['ai_strategy'],
            ai_catchphrase=row['ai_catchphrase'],
            ai_personality_prompt=row['ai_personality_prompt'],
            ai_emoji=row['ai_emoji'],
            available_cash=row['available_tokens'],
            total_tokens=row['total_tokens'],
            total_invested=row['total_invested'],
            created_at=row['created_at'],
            updated_at=row['updated_at'],
        )

    def _row_to_instrument(self, row: sqlite3.Row) -> Instrument:
        return Instrument(
            instrument_id=row['pitch_id'],
            ticker=row['ticker'],
            company_name=row['company_name'],
            category=row['category'],
            elevator_pitch=row['elevator_pitch'],
            founder_story=row['founder_story'],
            fun_fact=row['fun_fact'],
            reference_price=row['current_price'],
            price_change_24h=row['price_change_24h'],
            is_tradable=bool(row['is_tradable']),
            updated_at=row['updated_at'],
        )

    def _row_to_holding(self, row: sqlite3.Row) -> Holding:
        return Holding(
            id=row['id'],
            user_id=row['user_id'],
            instrument_id=row['pitch_id'],
            shares_owned=row['shares_owned'],
            cost_basis=row['total_invested'],
            avg_purchase_price=row['avg_purchase_price'],
            created_at=row['created_at'],
            updated_at=row['updated_at'],
        )

    def _row_to_transaction(self, row: sqlite3.Row) -> TransactionRecord:
        return TransactionRecord(
            id=row['id'],
            user_id=row['user_id'],
            instrument_id=row['pitch_id'],
            transaction_type=row['transaction_type'],
            shares=row['shares'],
            price_per_share=row['price_per_share'],
            total_amount=row['total_amount'],
            balance_before=row['balance_before'],
            balance_after=row['balance_after'],
            cost_basis_removed=row['cost_basis_removed'],
            realized_gain=row['realized_gain'],
            timestamp=row['timestamp'],
        )
