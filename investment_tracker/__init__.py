"""Mark-to-market reconciliation of investment holdings tracked in YNAB."""

from .batching import build_adjustment_entries
from .ledger import build_holdings
from .models import AdjustmentEntry, Holding, TickerDelta, Transaction
from .reconcile import compute_deltas, tickers_to_quote

__all__ = [
    "AdjustmentEntry",
    "Holding",
    "TickerDelta",
    "Transaction",
    "build_adjustment_entries",
    "build_holdings",
    "compute_deltas",
    "tickers_to_quote",
]
