"""
Scheduling: market calendar, slot idempotency and the batch coordinator.
"""

from .market_calendar import MarketCalendar, RunSlot
from .run_guard import RunRecord, RunSlotGuard, RunStatus
from .trading_run import BatchRunResult, PersonaRunResult, TradingRunCoordinator

__all__ = [
    'MarketCalendar',
    'RunSlot',
    'RunRecord',
    'RunSlotGuard',
    'RunStatus',
    'BatchRunResult',
    'PersonaRunResult',
    'TradingRunCoordinator',
]
