"""Mark-to-market reconciliation of a holdings snapshot against quotes."""
from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, List, Mapping, Optional, Union

from .models import CASH_TICKER, Holding, HoldingsSnapshot, TickerDelta

logger = logging.getLogger(__name__)

MILLIUNIT_SCALE = 1000

PriceLike = Union[Decimal, float, int, str]


def to_minor_units(value: Decimal) -> int:
    """Round to the nearest integer unit, halves away from zero."""

    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _as_decimal(price: PriceLike) -> Decimal:
    if isinstance(price, Decimal):
        return price
    return Decimal(str(price))


def holding_delta(holding: Holding, price: Optional[PriceLike], *, scale: int = MILLIUNIT_SCALE) -> int:
    """Return ``price * shares - book value`` for one holding, in minor units.

    ``CASH`` is valued at its own book value, so it always reconciles to 0.
    """

    if holding.is_cash:
        market_value = Decimal(holding.book_value)
    else:
        if price is None:
            raise ValueError(f"No price supplied for {holding.ticker}")
        market_value = _as_decimal(price) * holding.share_count * scale
    # Book values are whole minor units, so only the market value is rounded.
    # At an exact half-unit tie this can differ by one from rounding the
    # difference: a market value of 0.5 against a book value of 1 gives 0, not -1.
    return to_minor_units(market_value) - holding.book_value


def compute_deltas(
    holdings: HoldingsSnapshot,
    quotes: Mapping[str, Optional[PriceLike]],
    *,
    scale: int = MILLIUNIT_SCALE,
) -> List[TickerDelta]:
    """Compute the non-zero valuation deltas for ``holdings``.

    Results follow the snapshot's ordering. Closed positions are left alone
    and tickers without a quote, or whose value is out of range, are skipped
    with a warning.
    """

    deltas: List[TickerDelta] = []
    for ticker, holding in holdings.items():
        if holding.is_cash:
            delta = holding_delta(holding, 1, scale=scale)
        elif not holding.is_open:
            continue
        else:
            price = quotes.get(ticker)
            if price is None:
                logger.warning("Failed to get quote for: %s", ticker)
                continue
            try:
                delta = holding_delta(holding, price, scale=scale)
            except InvalidOperation:
                logger.warning("Value of %s is out of range, skipping: %s shares at %s", ticker, holding.share_count, price)
                continue
        if delta != 0:
            deltas.append(TickerDelta(ticker=ticker, delta=delta))
    return deltas


def tickers_to_quote(snapshots: Iterable[HoldingsSnapshot]) -> List[str]:
    """Return the sorted union of open, quotable tickers across snapshots."""

    tickers = set()
    for holdings in snapshots:
        tickers.update(t for t, h in holdings.items() if t != CASH_TICKER and h.is_open)
    return sorted(tickers)


__all__ = [
    "MILLIUNIT_SCALE",
    "compute_deltas",
    "holding_delta",
    "tickers_to_quote",
    "to_minor_units",
]
