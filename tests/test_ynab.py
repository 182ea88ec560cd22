"""YNAB client tests."""

from __future__ import annotations

import json
from datetime import date

import httpx
import pytest

from investment_tracker.models import AdjustmentEntry
from investment_tracker.providers.ynab import YNABClient, YNABError


def make_client(handler) -> YNABClient:
    return YNABClient("secret", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_get_accounts_sends_token_and_parses_accounts():
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "data": {
                    "accounts": [
                        {"id": "a1", "name": "Brokerage", "note": "INVESTMENT_TO_TRACK", "closed": False,
                         "deleted": False, "balance": 1000, "type": "otherAsset"},
                        {"id": "a2", "name": "Checking", "note": None, "closed": False, "deleted": False},
                    ]
                }
            },
        )

    client = make_client(handler)
    accounts = await client.get_accounts("b1")
    await client.aclose()

    assert seen[0].url.path == "/v1/budgets/b1/accounts"
    assert seen[0].headers["Authorization"] == "Bearer secret"
    assert [a.id for a in accounts] == ["a1", "a2"]
    assert accounts[0].is_tracked("INVESTMENT_TO_TRACK")
    assert not accounts[1].is_tracked("INVESTMENT_TO_TRACK")


@pytest.mark.asyncio
async def test_get_transactions_drops_deleted_and_parses_dates():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v1/budgets/b1/accounts/a1/transactions"
        return httpx.Response(
            200,
            json={
                "data": {
                    "transactions": [
                        {"id": "t1", "date": "2024-03-01", "amount": -1000000, "memo": "$ACME|BUY 10",
                         "payee_name": None, "transfer_account_id": None, "deleted": False, "cleared": "cleared"},
                        {"id": "t2", "date": "2024-03-02", "amount": 5, "memo": None,
                         "payee_name": "Interest", "transfer_account_id": None, "deleted": True},
                        {"id": "t3", "date": "2024-03-03", "amount": -2000, "memo": None,
                         "payee_name": "Transfer : Checking", "transfer_account_id": "chk"},
                    ]
                }
            },
        )

    client = make_client(handler)
    transactions = await client.get_transactions("b1", "a1")
    await client.aclose()

    assert [t.id for t in transactions] == ["t1", "t3"]
    assert transactions[0].date == date(2024, 3, 1)
    assert transactions[0].amount == -1_000_000
    assert transactions[1].is_outbound_transfer


@pytest.mark.asyncio
async def test_create_transactions_posts_bulk_payload():
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "POST"
        assert request.url.path == "/v1/budgets/b1/transactions"
        bodies.append(json.loads(request.content))
        return httpx.Response(201, json={"data": {"transaction_ids": ["n1"], "transactions": []}})

    entry = AdjustmentEntry(
        account_id="a1",
        date=date(2024, 5, 1),
        amount=1_150_000,
        payee_name="Investment Value Update",
        memo="$ACME|1150000",
    )
    client = make_client(handler)
    ids = await client.create_transactions("b1", [entry])
    await client.aclose()

    assert ids == ["n1"]
    assert bodies == [{"transactions": [entry.to_payload()]}]


@pytest.mark.asyncio
async def test_error_status_raises_with_detail():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": {"id": "401", "name": "unauthorized", "detail": "Unauthorized"}})

    client = make_client(handler)
    with pytest.raises(YNABError) as excinfo:
        await client.get_accounts("b1")
    await client.aclose()

    assert excinfo.value.status_code == 401
    assert excinfo.value.detail == "Unauthorized"


@pytest.mark.asyncio
async def test_error_without_json_body_uses_text():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="Service Unavailable")

    client = make_client(handler)
    with pytest.raises(YNABError, match="Service Unavailable"):
        await client.get_accounts("b1")
    await client.aclose()
