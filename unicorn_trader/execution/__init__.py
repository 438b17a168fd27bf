"""
Trade execution against the ledger.
"""

from .trade_executor import ExecutionResult, TradeExecutionEngine, TradeOutcome

__all__ = [
    'ExecutionResult',
    'TradeExecutionEngine',
    'TradeOutcome',
]
