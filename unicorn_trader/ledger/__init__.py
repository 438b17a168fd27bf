"""
Ledger: accounts, instruments, holdings and the atomic trade procedure.
"""

from .instruments import HM14_INSTRUMENTS
from .ledger_store import AccountNotFoundError, LedgerStore
from .models import Account, Holding, Instrument, TradeReceipt, TransactionRecord

__all__ = [
    'HM14_INSTRUMENTS',
    'AccountNotFoundError',
    'LedgerStore',
    'Account',
    'Holding',
    'Instrument',
    'TradeReceipt',
    'TransactionRecord',
]
