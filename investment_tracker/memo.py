"""Parser and encoder for the transaction memo mini-language.

Trade memos look like ``$ACME|BUY 10``, ``$ACME|SELL 4`` or
``$ACME|SELL ALL``. Bulk value-update postings carry a comma separated list
of ``$TICKER|<milliunits>`` fragments. Everything else is a cash movement.
"""

from __future__ import annotations

import re
from decimal import Decimal
from typing import List, Optional

from .models import (
    CASH_TICKER,
    Buy,
    CashMovement,
    MemoAction,
    Sell,
    SellAll,
    TradeAction,
    Transaction,
    ValueUpdate,
)

FRAGMENT_SEPARATOR = ","

_TRADE_RE = re.compile(r"^\s*\$(?P<ticker>[A-Za-z0-9.\-=^]+)\s*\|\s*(?P<action>.*?)\s*$")
_UPDATE_RE = re.compile(r"^\s*\$?(?P<ticker>[A-Za-z0-9.\-=^]+)\s*\|\s*(?P<delta>[+-]?\d+)\s*$")
_SHARES_RE = re.compile(r"^\d+(?:\.\d+)?$")


class MemoParseError(ValueError):
    """Raised when a memo looks like an encoded action but does not parse."""


def _parse_shares(raw: str, memo: str) -> Decimal:
    # Plain decimal notation only; exponents and underscores are rejected.
    if not _SHARES_RE.match(raw):
        raise MemoParseError(f"Invalid share count {raw!r} in memo {memo!r}")
    shares = Decimal(raw)
    if shares <= 0:
        raise MemoParseError(f"Share count must be positive in memo {memo!r}")
    return shares


def parse_trade_memo(memo: Optional[str]) -> Optional[TradeAction]:
    """Parse a ``$TICKER|ACTION`` memo.

    Returns ``None`` when the memo is not a trade memo at all, and raises
    :class:`MemoParseError` when it is one but the action is malformed.
    """

    if not memo:
        return None
    match = _TRADE_RE.match(memo)
    if match is None:
        return None
    ticker = match.group("ticker").upper()
    if ticker == CASH_TICKER:
        raise MemoParseError(f"{CASH_TICKER} is reserved and cannot be traded: {memo!r}")
    parts = match.group("action").split()
    if not parts:
        raise MemoParseError(f"Missing action in memo {memo!r}")
    verb = parts[0].upper()
    if verb not in ("BUY", "SELL") or len(parts) != 2:
        raise MemoParseError(f"Unrecognised action in memo {memo!r}")
    if verb == "SELL" and parts[1].upper() == "ALL":
        return SellAll(ticker=ticker)
    shares = _parse_shares(parts[1], memo)
    if verb == "BUY":
        return Buy(ticker=ticker, shares=shares)
    return Sell(ticker=ticker, shares=shares)


def split_update_memo(memo: Optional[str]) -> List[str]:
    """Return the non-empty fragments of a bulk value-update memo."""

    if not memo:
        return []
    return [part for part in (p.strip() for p in memo.split(FRAGMENT_SEPARATOR)) if part]


def parse_update_fragment(fragment: str) -> ValueUpdate:
    match = _UPDATE_RE.match(fragment)
    if match is None:
        raise MemoParseError(f"Malformed value update fragment {fragment!r}")
    ticker = match.group("ticker").upper()
    if ticker == CASH_TICKER:
        raise MemoParseError(f"{CASH_TICKER} cannot carry a value update: {fragment!r}")
    return ValueUpdate(ticker=ticker, delta=int(match.group("delta")))


def format_update_fragment(ticker: str, delta: int) -> str:
    return f"${ticker}|{delta}"


def join_fragments(fragments: List[str]) -> str:
    return FRAGMENT_SEPARATOR.join(fragments)


def is_value_update(transaction: Transaction, *, update_payee: str) -> bool:
    return transaction.payee_name == update_payee


def classify_transaction(transaction: Transaction) -> MemoAction:
    """Classify a regular (non value-update) transaction.

    Outbound transfers are always cash movements, whatever their memo says.
    """

    if transaction.is_outbound_transfer:
        return CashMovement()
    action = parse_trade_memo(transaction.memo)
    if action is None:
        return CashMovement()
    return action


__all__ = [
    "MemoParseError",
    "classify_transaction",
    "format_update_fragment",
    "is_value_update",
    "join_fragments",
    "parse_trade_memo",
    "parse_update_fragment",
    "split_update_memo",
]
