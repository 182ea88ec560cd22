"""Replay a transaction history into a holdings snapshot."""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable, Sequence

from .memo import (
    MemoParseError,
    classify_transaction,
    is_value_update,
    parse_update_fragment,
    split_update_memo,
)
from .models import (
    CASH_TICKER,
    Buy,
    CashMovement,
    Holding,
    HoldingsSnapshot,
    Sell,
    SellAll,
    Transaction,
)

logger = logging.getLogger(__name__)


def _holding(holdings: HoldingsSnapshot, ticker: str) -> Holding:
    holding = holdings.get(ticker)
    if holding is None:
        holding = Holding(ticker=ticker)
        holdings[ticker] = holding
    return holding


def _apply_value_update(holdings: HoldingsSnapshot, tx: Transaction) -> None:
    for fragment in split_update_memo(tx.memo):
        try:
            update = parse_update_fragment(fragment)
        except MemoParseError as exc:
            logger.warning("Skipping value update fragment in transaction %s: %s", tx.id, exc)
            continue
        _holding(holdings, update.ticker).book_value += update.delta


def _apply_transaction(holdings: HoldingsSnapshot, tx: Transaction) -> None:
    cash = holdings[CASH_TICKER]
    try:
        action = classify_transaction(tx)
    except MemoParseError as exc:
        logger.warning("Skipping transaction %s on %s: %s", tx.id, tx.date, exc)
        return

    if isinstance(action, CashMovement):
        cash.book_value += tx.amount
        return

    holding = _holding(holdings, action.ticker)
    holding.book_value += tx.amount
    if isinstance(action, Buy):
        holding.share_count += action.shares
        # Transfer-funded purchases never touched this account's cash.
        if not tx.is_transfer:
            cash.book_value += tx.amount
    elif isinstance(action, Sell):
        holding.share_count -= action.shares
        cash.book_value += tx.amount
    elif isinstance(action, SellAll):
        holding.share_count = Decimal("0")
        cash.book_value += tx.amount


def sort_for_replay(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Order transactions by date; equal dates keep their original order."""

    return sorted(transactions, key=lambda tx: tx.date)


def build_holdings(
    transactions: Sequence[Transaction],
    *,
    update_payee: str,
) -> HoldingsSnapshot:
    """Replay ``transactions`` into a fresh holdings snapshot.

    The replay runs in ascending date order so that ``SELL ALL`` resets a
    position relative to the trades dated before it, regardless of the order
    the ledger returned them in. The ``CASH`` holding is always present.
    """

    holdings: HoldingsSnapshot = {CASH_TICKER: Holding(ticker=CASH_TICKER)}
    for tx in sort_for_replay(transactions):
        if is_value_update(tx, update_payee=update_payee):
            _apply_value_update(holdings, tx)
        else:
            _apply_transaction(holdings, tx)
    return holdings


def describe_holdings(holdings: HoldingsSnapshot) -> list[str]:
    """Return one human readable line per holding, for logging."""

    lines = []
    for ticker, holding in holdings.items():
        if holding.is_cash:
            lines.append(f"[{ticker}] Value: {holding.book_value}")
        else:
            lines.append(f"[{ticker}] Shares: {holding.share_count} Value: {holding.book_value}")
    return lines


__all__ = ["build_holdings", "describe_holdings", "sort_for_replay"]
