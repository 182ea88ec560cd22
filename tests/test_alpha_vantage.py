"""Alpha Vantage client tests."""

from __future__ import annotations

from decimal import Decimal

import pytest

from investment_tracker.providers import alpha_vantage
from investment_tracker.providers.alpha_vantage import AlphaVantageClient, AlphaVantageError


class StubResponse:
    def __init__(self, payload: dict[str, object], status_code: int = 200) -> None:
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise RuntimeError("error")

    def json(self) -> dict[str, object]:
        return self._payload


class StubClient:
    def __init__(self, prices: dict[str, str] | None = None) -> None:
        self.prices = prices or {}
        self.calls: list[dict[str, object]] = []

    async def get(self, url: str, params: dict[str, object], timeout: float) -> StubResponse:
        self.calls.append(params)
        symbol = params["symbol"]
        if symbol in self.prices:
            return StubResponse({"Global Quote": {"01. symbol": symbol, "05. price": self.prices[symbol]}})
        return StubResponse({"Global Quote": {}})

    async def aclose(self) -> None:  # pragma: no cover - included for interface completeness
        return None


def make_client(stub: StubClient, requests_per_minute: int = 10) -> AlphaVantageClient:
    return AlphaVantageClient(api_key="test", requests_per_minute=requests_per_minute, timeout=5, client=stub)


@pytest.mark.asyncio
async def test_injects_api_key_and_requests_global_quote():
    client = make_client(StubClient({"ACME": "100.0000"}))
    await client.latest_price("ACME")
    call = client._client.calls[0]
    assert call["apikey"] == "test"
    assert call["function"] == "GLOBAL_QUOTE"


@pytest.mark.asyncio
async def test_resolve_quotes_marks_unknown_tickers_absent():
    client = make_client(StubClient({"ACME": "100.0000", "MSFT": "412.3300", "ZERO": "0.0000"}))
    quotes = await client.resolve_quotes(["ACME", "MSFT", "NOPE", "ZERO", "ACME"])
    assert quotes == {"ACME": Decimal("100"), "MSFT": Decimal("412.33"), "NOPE": None, "ZERO": None}
    assert len(client._client.calls) == 4


@pytest.mark.asyncio
async def test_raises_on_note():
    class NoteClient(StubClient):
        async def get(self, url: str, params: dict[str, object], timeout: float) -> StubResponse:
            return StubResponse({"Note": "limit"})

    client = make_client(NoteClient())
    with pytest.raises(AlphaVantageError):
        await client.resolve_quotes(["ACME"])


@pytest.mark.asyncio
async def test_throttles_to_requests_per_minute(monkeypatch):
    sleeps: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)

    monkeypatch.setattr(alpha_vantage.asyncio, "sleep", fake_sleep)
    client = make_client(StubClient({"A": "1", "B": "2"}), requests_per_minute=1)
    await client.resolve_quotes(["A", "B"])
    assert len(sleeps) == 1
    assert 0 < sleeps[0] <= 60
