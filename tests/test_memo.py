from datetime import date
from decimal import Decimal

import pytest

from investment_tracker.memo import (
    MemoParseError,
    classify_transaction,
    format_update_fragment,
    parse_trade_memo,
    parse_update_fragment,
    split_update_memo,
)
from investment_tracker.models import Buy, CashMovement, Sell, SellAll, Transaction, ValueUpdate


def test_parses_buy_sell_and_sell_all():
    assert parse_trade_memo("$ACME|BUY 10") == Buy(ticker="ACME", shares=Decimal("10"))
    assert parse_trade_memo("$acme|sell 2.5") == Sell(ticker="ACME", shares=Decimal("2.5"))
    assert parse_trade_memo(" $VWRL.L | SELL ALL ") == SellAll(ticker="VWRL.L")


@pytest.mark.parametrize("memo", [None, "", "Monthly deposit", "$5 platform fee", "BUY 10"])
def test_non_trade_memos_are_not_trades(memo):
    assert parse_trade_memo(memo) is None


@pytest.mark.parametrize(
    "memo",
    [
        "$ACME|BUY ten",
        "$ACME|HOLD 3",
        "$ACME|BUY -3",
        "$ACME|BUY 0",
        "$ACME|BUY",
        "$ACME|",
        "$ACME|BUY 1 2",
        "$ACME|1500",
        "$CASH|BUY 1",
        "$ACME|BUY 1e30",
        "$ACME|BUY 1_0",
        "$ACME|SELL Infinity",
        "$ACME|BUY 1.",
    ],
)
def test_malformed_trade_memos_raise(memo):
    with pytest.raises(MemoParseError):
        parse_trade_memo(memo)


def test_update_fragments_parse_with_or_without_dollar():
    assert parse_update_fragment("$ACME|-1500") == ValueUpdate(ticker="ACME", delta=-1500)
    assert parse_update_fragment("msft|+20") == ValueUpdate(ticker="MSFT", delta=20)


@pytest.mark.parametrize("fragment", ["ACME|1.5", "ACME", "|12", "$CASH|10"])
def test_malformed_update_fragments_raise(fragment):
    with pytest.raises(MemoParseError):
        parse_update_fragment(fragment)


def test_split_update_memo_drops_blank_fragments():
    assert split_update_memo("$A|1, $B|-2,,") == ["$A|1", "$B|-2"]
    assert split_update_memo(None) == []


def test_fragment_round_trip_keeps_exact_delta():
    fragment = format_update_fragment("ACME", -1150001)
    assert fragment == "$ACME|-1150001"
    assert parse_update_fragment(fragment) == ValueUpdate(ticker="ACME", delta=-1150001)


def test_outbound_transfer_is_cash_even_with_trade_memo():
    tx = Transaction(date=date(2024, 1, 1), amount=-5000, memo="$ACME|BUY 1", transfer_account_id="chk")
    assert classify_transaction(tx) == CashMovement()


def test_inbound_transfer_keeps_trade_memo():
    tx = Transaction(date=date(2024, 1, 1), amount=5000, memo="$ACME|BUY 1", transfer_account_id="chk")
    assert classify_transaction(tx) == Buy(ticker="ACME", shares=Decimal("1"))
