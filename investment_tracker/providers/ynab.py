"""HTTP client for the YNAB budgeting API."""

from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Sequence

import httpx
from pydantic import BaseModel, ConfigDict

from investment_tracker.config import YNAB_BASE_URL
from investment_tracker.models import Account, AdjustmentEntry, Transaction

logger = logging.getLogger(__name__)


class YNABError(RuntimeError):
    """Raised when the YNAB API answers with an error status."""

    def __init__(self, status_code: int, detail: Any) -> None:
        super().__init__(f"YNAB API error {status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


class AccountPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    note: str | None = None
    closed: bool = False
    deleted: bool = False

    def to_domain(self) -> Account:
        return Account(id=self.id, name=self.name, note=self.note, closed=self.closed, deleted=self.deleted)


class TransactionPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    date: dt.date
    amount: int
    memo: str | None = None
    payee_name: str | None = None
    transfer_account_id: str | None = None
    deleted: bool = False

    def to_domain(self) -> Transaction:
        return Transaction(
            id=self.id,
            date=self.date,
            amount=self.amount,
            memo=self.memo,
            payee_name=self.payee_name,
            transfer_account_id=self.transfer_account_id,
        )


class YNABClient:
    """Thin async wrapper over the endpoints the tracker needs."""

    def __init__(
        self,
        api_token: str,
        *,
        base_url: str = YNAB_BASE_URL,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            headers={"Authorization": f"Bearer {api_token}"},
            transport=transport,
        )

    async def _request(self, method: str, path: str, json: Any | None = None) -> dict[str, Any]:
        response = await self._client.request(method, path, json=json)
        if response.status_code >= 400:
            logger.warning("YNAB API error %s for %s %s", response.status_code, method, path)
            detail: Any
            try:
                payload = response.json()
                detail = payload.get("error", payload)
                if isinstance(detail, dict):
                    detail = detail.get("detail") or detail.get("name") or detail
            except ValueError:
                detail = response.text
            raise YNABError(response.status_code, detail)
        return response.json().get("data", {})

    async def get_accounts(self, budget_id: str) -> list[Account]:
        data = await self._request("GET", f"/budgets/{budget_id}/accounts")
        return [AccountPayload.model_validate(raw).to_domain() for raw in data.get("accounts", [])]

    async def get_transactions(self, budget_id: str, account_id: str) -> list[Transaction]:
        """Return the live (non-deleted) transactions of one account."""

        data = await self._request("GET", f"/budgets/{budget_id}/accounts/{account_id}/transactions")
        payloads = [TransactionPayload.model_validate(raw) for raw in data.get("transactions", [])]
        return [p.to_domain() for p in payloads if not p.deleted]

    async def create_transactions(self, budget_id: str, entries: Sequence[AdjustmentEntry]) -> list[str]:
        """Submit ``entries`` in one bulk request and return the created ids."""

        body = {"transactions": [entry.to_payload() for entry in entries]}
        data = await self._request("POST", f"/budgets/{budget_id}/transactions", json=body)
        return list(data.get("transaction_ids", []))

    async def aclose(self) -> None:
        await self._client.aclose()


__all__ = ["AccountPayload", "TransactionPayload", "YNABClient", "YNABError"]
