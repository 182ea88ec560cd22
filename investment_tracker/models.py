"""Domain models used by the investment tracker reconciliation engine."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional, Union

CASH_TICKER = "CASH"


@dataclass(frozen=True)
class Account:
    """A budget account as exposed by the ledger API."""

    id: str
    name: str
    note: Optional[str] = None
    closed: bool = False
    deleted: bool = False

    def is_tracked(self, marker: str) -> bool:
        """Return whether the account note carries the tracking marker."""

        if self.closed or self.deleted:
            return False
        return bool(self.note) and marker in self.note


@dataclass(frozen=True)
class Transaction:
    """A recorded ledger transaction. ``amount`` is in milliunits."""

    date: date
    amount: int
    memo: Optional[str] = None
    payee_name: Optional[str] = None
    transfer_account_id: Optional[str] = None
    id: Optional[str] = None

    @property
    def is_transfer(self) -> bool:
        return self.transfer_account_id is not None

    @property
    def is_outbound_transfer(self) -> bool:
        return self.is_transfer and self.amount < 0


@dataclass(frozen=True)
class CashMovement:
    """Deposit, withdrawal, fee or any other movement touching only cash."""


@dataclass(frozen=True)
class Buy:
    ticker: str
    shares: Decimal


@dataclass(frozen=True)
class Sell:
    ticker: str
    shares: Decimal


@dataclass(frozen=True)
class SellAll:
    ticker: str


@dataclass(frozen=True)
class ValueUpdate:
    """Book value correction for ``ticker`` expressed in milliunits."""

    ticker: str
    delta: int


TradeAction = Union[Buy, Sell, SellAll]
MemoAction = Union[CashMovement, Buy, Sell, SellAll, ValueUpdate]


@dataclass
class Holding:
    """Running position for a single ticker.

    ``book_value`` is kept in milliunits and only ever incremented or
    decremented during a replay. For the ``CASH`` pseudo-ticker the share
    count is ignored.
    """

    ticker: str
    share_count: Decimal = Decimal("0")
    book_value: int = 0

    @property
    def is_cash(self) -> bool:
        return self.ticker == CASH_TICKER

    @property
    def is_open(self) -> bool:
        return not self.is_cash and self.share_count != 0


HoldingsSnapshot = Dict[str, Holding]


@dataclass(frozen=True)
class TickerDelta:
    """Signed mark-to-market correction for one ticker, in milliunits."""

    ticker: str
    delta: int


@dataclass(frozen=True)
class AdjustmentEntry:
    """An outbound bulk value-update transaction."""

    account_id: str
    date: date
    amount: int
    payee_name: str
    memo: str
    cleared: str = "cleared"
    approved: bool = True
    flag_color: Optional[str] = "blue"
    deltas: tuple[TickerDelta, ...] = field(default=(), compare=False)

    def to_payload(self) -> dict[str, Any]:
        """Return the ``SaveTransaction`` body understood by the ledger API."""

        return {
            "account_id": self.account_id,
            "date": self.date.isoformat(),
            "amount": self.amount,
            "payee_name": self.payee_name,
            "memo": self.memo,
            "cleared": self.cleared,
            "approved": self.approved,
            "flag_color": self.flag_color,
        }
