"""Clients for the external ledger and quote services."""

from .alpha_vantage import AlphaVantageClient, AlphaVantageError
from .ynab import YNABClient, YNABError

__all__ = [
    "AlphaVantageClient",
    "AlphaVantageError",
    "YNABClient",
    "YNABError",
]
