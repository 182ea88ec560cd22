"""Pack per-ticker deltas into bulk value-update ledger entries."""
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional, Sequence

from .memo import format_update_fragment, join_fragments
from .models import AdjustmentEntry, TickerDelta

logger = logging.getLogger(__name__)

MAX_MEMO_LENGTH = 500
DEFAULT_UPDATE_PAYEE = "Investment Value Update"
DEFAULT_FLAG_COLOR = "blue"


def local_today(utc_offset: Optional[timedelta] = None, *, now: Optional[datetime] = None) -> date:
    """Return the calendar day for the given UTC offset.

    Without an offset the process's local time zone is used.
    """

    current = now or datetime.now(timezone.utc)
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    if utc_offset is None:
        return current.astimezone().date()
    return current.astimezone(timezone(utc_offset)).date()


def _entry(
    account_id: str,
    on_date: date,
    payee_name: str,
    flag_color: Optional[str],
    batch: List[TickerDelta],
) -> AdjustmentEntry:
    return AdjustmentEntry(
        account_id=account_id,
        date=on_date,
        amount=sum(d.delta for d in batch),
        payee_name=payee_name,
        memo=join_fragments([format_update_fragment(d.ticker, d.delta) for d in batch]),
        flag_color=flag_color,
        deltas=tuple(batch),
    )


def build_adjustment_entries(
    account_id: str,
    deltas: Sequence[TickerDelta],
    *,
    on_date: date,
    payee_name: str = DEFAULT_UPDATE_PAYEE,
    max_memo_length: int = MAX_MEMO_LENGTH,
    flag_color: Optional[str] = DEFAULT_FLAG_COLOR,
) -> List[AdjustmentEntry]:
    """Greedily pack ``deltas`` into as few entries as the memo limit allows.

    Fragments are taken in encounter order. A fragment joins the open entry
    when the comma joined memo stays within ``max_memo_length``; otherwise a
    new entry is started. Zero deltas are dropped.
    """

    entries: List[AdjustmentEntry] = []
    batch: List[TickerDelta] = []
    memo_length = 0

    for item in deltas:
        if item.delta == 0:
            continue
        fragment_length = len(format_update_fragment(item.ticker, item.delta))
        if fragment_length > max_memo_length:
            logger.error(
                "Value update for %s is %d characters, over the %d character memo limit",
                item.ticker,
                fragment_length,
                max_memo_length,
            )
        added = fragment_length if not batch else fragment_length + 1
        if batch and memo_length + added > max_memo_length:
            entries.append(_entry(account_id, on_date, payee_name, flag_color, batch))
            batch, memo_length, added = [], 0, fragment_length
        batch.append(item)
        memo_length += added

    if batch:
        entries.append(_entry(account_id, on_date, payee_name, flag_color, batch))
    return entries


__all__ = [
    "DEFAULT_FLAG_COLOR",
    "DEFAULT_UPDATE_PAYEE",
    "MAX_MEMO_LENGTH",
    "build_adjustment_entries",
    "local_today",
]
