"""
Market data: live quote cache and per-persona market snapshots.
"""

from .quote_cache import (
    FinnhubQuoteProvider,
    PriceQuote,
    PriceSource,
    PriceUnavailableError,
    QuoteCache,
    QuoteProvider,
    QuoteProviderError,
)
from .snapshot_builder import HoldingSummary, InstrumentQuote, MarketSnapshot, MarketSnapshotBuilder

__all__ = [
    'FinnhubQuoteProvider',
    'PriceQuote',
    'PriceSource',
    'PriceUnavailableError',
    'QuoteCache',
    'QuoteProvider',
    'QuoteProviderError',
    'HoldingSummary',
    'InstrumentQuote',
    'MarketSnapshot',
    'MarketSnapshotBuilder',
]
