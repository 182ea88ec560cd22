"""Run a full reconciliation pass over every tracked account.

Accounts are processed concurrently: each one has its transactions fetched
and replayed independently, quotes are then resolved once for the union of
open tickers, and every account is reconciled and batched against that shared
quote set. Nothing is submitted until every account has been planned, and the
whole batch goes out in a single request.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, Mapping, Optional, Protocol, Sequence

from opentelemetry import metrics, trace

from .batching import build_adjustment_entries, local_today
from .config import TrackerSettings
from .ledger import build_holdings, describe_holdings
from .models import Account, AdjustmentEntry, HoldingsSnapshot, TickerDelta, Transaction
from .reconcile import compute_deltas, tickers_to_quote

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)
meter = metrics.get_meter(__name__)
_entries_counter = meter.create_counter(
    "investment_tracker.adjustment_entries",
    description="Adjustment entries submitted to the ledger",
)


class LedgerAPI(Protocol):
    """Budgeting system operations used by the tracker."""

    async def get_accounts(self, budget_id: str) -> list[Account]:
        ...

    async def get_transactions(self, budget_id: str, account_id: str) -> list[Transaction]:
        ...

    async def create_transactions(self, budget_id: str, entries: Sequence[AdjustmentEntry]) -> list[str]:
        ...


class QuoteSource(Protocol):
    """Market data operations used by the tracker."""

    async def resolve_quotes(self, tickers: Iterable[str]) -> Mapping[str, Optional[Decimal]]:
        ...


@dataclass
class AccountPlan:
    """Everything computed for one account during a run."""

    account: Account
    holdings: HoldingsSnapshot
    deltas: list[TickerDelta] = field(default_factory=list)
    entries: list[AdjustmentEntry] = field(default_factory=list)


@dataclass
class RunSummary:
    plans: list[AccountPlan]
    quotes: dict[str, Optional[Decimal]]
    submitted_ids: list[str] = field(default_factory=list)
    dry_run: bool = False

    @property
    def entries(self) -> list[AdjustmentEntry]:
        return [entry for plan in self.plans for entry in plan.entries]


class InvestmentTracker:
    """Coordinates the ledger, quote source and reconciliation engine."""

    def __init__(self, ledger: LedgerAPI, quotes: QuoteSource, settings: TrackerSettings) -> None:
        self._ledger = ledger
        self._quotes = quotes
        self._settings = settings

    async def tracked_accounts(self) -> list[Account]:
        budget_id = self._settings.ynab_budget_id
        logger.info("Fetching accounts...")
        accounts = await self._ledger.get_accounts(budget_id)
        logger.info("Fetched %d accounts.", len(accounts))
        marker = self._settings.tracked_account_marker
        tracked = [account for account in accounts if account.is_tracked(marker)]
        logger.info("%d investment accounts found.", len(tracked))
        return tracked

    async def load_holdings(self, account: Account) -> AccountPlan:
        with tracer.start_as_current_span("account.load_holdings") as span:
            span.set_attribute("account.id", account.id)
            logger.info("Processing account %s...", account.name)
            transactions = await self._ledger.get_transactions(self._settings.ynab_budget_id, account.id)
            logger.info("Fetched %d transactions for %s.", len(transactions), account.name)
            holdings = build_holdings(transactions, update_payee=self._settings.update_payee_name)
            logger.info("Current holdings for %s:", account.name)
            for line in describe_holdings(holdings):
                logger.info("       %s", line)
            return AccountPlan(account=account, holdings=holdings)

    def plan_adjustments(
        self,
        plan: AccountPlan,
        quotes: Mapping[str, Optional[Decimal]],
        on_date: date,
    ) -> AccountPlan:
        settings = self._settings
        plan.deltas = compute_deltas(plan.holdings, quotes, scale=settings.milliunit_scale)
        plan.entries = build_adjustment_entries(
            plan.account.id,
            plan.deltas,
            on_date=on_date,
            payee_name=settings.update_payee_name,
            max_memo_length=settings.max_memo_length,
            flag_color=settings.flag_color,
        )
        for item in plan.deltas:
            logger.info(
                "Creating update for %s of %d in %s", item.ticker, item.delta, plan.account.name
            )
        return plan

    async def run(self, *, dry_run: bool = False, on_date: date | None = None) -> RunSummary:
        """Reconcile all tracked accounts and submit the resulting entries.

        Collaborator errors propagate unchanged; in that case nothing has been
        submitted.
        """

        with tracer.start_as_current_span("investment_tracker.run") as span:
            accounts = await self.tracked_accounts()
            plans = list(await asyncio.gather(*(self.load_holdings(a) for a in accounts)))

            tickers = tickers_to_quote(plan.holdings for plan in plans)
            quotes: dict[str, Optional[Decimal]] = {}
            if tickers:
                logger.info("Fetching quotes for %d tickers...", len(tickers))
                quotes = dict(await self._quotes.resolve_quotes(tickers))
                logger.info("Fetched quotes.")

            on_date = on_date or local_today(self._settings.utc_offset())
            for plan in plans:
                self.plan_adjustments(plan, quotes, on_date)

            summary = RunSummary(plans=plans, quotes=quotes, dry_run=dry_run)
            entries = summary.entries
            span.set_attribute("investment_tracker.entries", len(entries))
            if not entries:
                logger.info("No updates needed.")
                return summary

            logger.info("Updates:")
            for entry in entries:
                logger.info("       [%s] %d %s", entry.payee_name, entry.amount, entry.memo)

            if dry_run:
                logger.info("Dry run: %d entries not posted.", len(entries))
                return summary

            logger.info("Posting %d transactions to YNAB...", len(entries))
            summary.submitted_ids = await self._ledger.create_transactions(
                self._settings.ynab_budget_id, entries
            )
            _entries_counter.add(len(entries))
            logger.info("Posted transactions.")
            return summary


__all__ = ["AccountPlan", "InvestmentTracker", "LedgerAPI", "QuoteSource", "RunSummary"]
