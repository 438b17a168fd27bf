"""
Ledger models matching the database schema.

Money is play currency (MTK) held as floats; comparisons that guard the
ledger use SHARE_EPSILON / CASH_EPSILON tolerances.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

SHARE_EPSILON = 1e-9
CASH_EPSILON = 1e-6

TradeSide = Literal['BUY', 'SELL']


class Account(BaseModel):
    """One human or AI participant (row of user_token_balances)"""
    user_id: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    is_ai_investor: bool = False
    is_active: bool = True
    ai_strategy: Optional[str] = None
    ai_catchphrase: Optional[str] = None
    ai_personality_prompt: Optional[str] = None
    ai_emoji: Optional[str] = None
    available_cash: float = Field(ge=0)
    total_tokens: float
    total_invested: float = 0.0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def label(self) -> str:
        return self.display_name or self.email or self.user_id


class Instrument(BaseModel):
    """One tradable company (row of pitch_market_data)"""
    instrument_id: int
    ticker: str
    company_name: str
    category: Optional[str] = None
    elevator_pitch: Optional[str] = None
    founder_story: Optional[str] = None
    fun_fact: Optional[str] = None
    reference_price: Optional[float] = Field(default=None, gt=0)
    price_change_24h: Optional[float] = None
    is_tradable: bool = True
    updated_at: Optional[datetime] = None


class Holding(BaseModel):
    """Open position; at most one per (account, instrument)"""
    id: Optional[int] = None
    user_id: str
    instrument_id: int
    shares_owned: float = Field(gt=0)
    cost_basis: float = Field(ge=0)
    avg_purchase_price: float = Field(ge=0)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TransactionRecord(BaseModel):
    """Append-only record of one executed BUY or SELL"""
    id: Optional[int] = None
    user_id: str
    instrument_id: int
    transaction_type: TradeSide
    shares: float
    price_per_share: float
    total_amount: float
    balance_before: float
    balance_after: float
    cost_basis_removed: Optional[float] = None
    realized_gain: Optional[float] = None
    timestamp: Optional[datetime] = None


class TradeReceipt(BaseModel):
    """Outcome of LedgerStore.execute_trade"""
    success: bool
    side: TradeSide
    user_id: str
    instrument_id: int
    shares: float
    price: float
    amount: float = 0.0
    balance_before: Optional[float] = None
    new_balance: Optional[float] = None
    cost_basis_removed: Optional[float] = None
    realized_gain: Optional[float] = None
    shares_remaining: Optional[float] = None
    transaction_id: Optional[int] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    max_affordable_shares: Optional[float] = None
    shares_owned: Optional[float] = None
