# src/tracking/cost_aggregator.py - v1
"""Read-only cost reporting over the run ledger.

Every figure is recomputed from RunRecords on each call; nothing is cached.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime, timedelta

from contentflow.core.models import RunFilter, RunRecord, ensure_utc, utcnow
from contentflow.storage.base_repository import BaseRepository
from contentflow.tracking.models import (
    BudgetAlert,
    CostSummary,
    DailyCost,
    ItemCost,
    ModelCost,
    StepCost,
)

logger = logging.getLogger(__name__)

UNKNOWN_MODEL = "unknown"
DEFAULT_ALERT_PCT = 80.0


def _running_avg(old_avg: float, old_count: int, new_value: float) -> float:
    """Incremental mean after adding one value."""
    return (old_avg * old_count + new_value) / (old_count + 1)


def summarize_runs(runs: list[RunRecord]) -> CostSummary:
    """Aggregate a list of runs into a CostSummary."""
    summary = CostSummary()
    by_model: dict[str, ModelCost] = {}
    by_step: dict[str, StepCost] = {}
    items: set[str] = set()

    for run in runs:
        summary.total_runs += 1
        summary.total_cost_usd += run.cost_usd
        summary.total_tokens_in += run.tokens_in
        summary.total_tokens_out += run.tokens_out
        if run.status == "success":
            summary.successful_runs += 1
        else:
            summary.failed_runs += 1
        items.add(run.work_item_id)

        model = run.model_used or UNKNOWN_MODEL
        mc = by_model.setdefault(model, ModelCost(model=model))
        mc.runs += 1
        mc.tokens_in += run.tokens_in
        mc.tokens_out += run.tokens_out
        mc.cost_usd += run.cost_usd

        sc = by_step.setdefault(run.step.value, StepCost(step=run.step.value))
        sc.avg_duration_ms = _running_avg(sc.avg_duration_ms, sc.runs, run.duration_ms)
        sc.runs += 1
        sc.cost_usd += run.cost_usd

    summary.total_cost_usd = round(summary.total_cost_usd, 6)
    summary.avg_cost_per_item = round(summary.total_cost_usd / len(items), 6) if items else 0.0
    for mc in by_model.values():
        mc.cost_usd = round(mc.cost_usd, 6)
    for sc in by_step.values():
        sc.cost_usd = round(sc.cost_usd, 6)
    summary.by_model = sorted(by_model.values(), key=lambda m: m.cost_usd, reverse=True)
    summary.by_step = sorted(by_step.values(), key=lambda s: s.cost_usd, reverse=True)
    return summary


class CostAggregator:
    """Cost reports over a repository's run ledger."""

    def __init__(self, repository: BaseRepository, alert_pct: float = DEFAULT_ALERT_PCT) -> None:
        self._repo = repository
        self._alert_pct = alert_pct

    async def summary(
        self,
        owner_id: str | None = None,
        from_date: datetime | None = None,
        to_date: datetime | None = None,
    ) -> CostSummary:
        """Totals, per-model and per-step breakdown.

        Args:
            owner_id: Restrict to work items published to this target.
            from_date: Inclusive lower bound on run creation time.
            to_date: Inclusive upper bound on run creation time.
        """
        run_filter = RunFilter(created_from=from_date, created_to=to_date)
        if owner_id is not None:
            items = await self._repo.list_items(target_id=owner_id)
            run_filter.work_item_ids = [i.id for i in items]
        return summarize_runs(await self._repo.query_runs(run_filter))

    async def daily_buckets(self, days: int = 30, now: datetime | None = None) -> list[DailyCost]:
        """Per-day cost for the last `days` days. Sparse, ascending by date."""
        since = ensure_utc(now or utcnow()) - timedelta(days=days)
        runs = await self._repo.query_runs(RunFilter(created_from=since))

        buckets: dict[str, DailyCost] = {}
        for run in runs:
            key = ensure_utc(run.created_at).date().isoformat()
            bucket = buckets.setdefault(key, DailyCost(date=key))
            bucket.cost_usd = round(bucket.cost_usd + run.cost_usd, 6)
            bucket.runs += 1
            bucket.tokens_in += run.tokens_in
            bucket.tokens_out += run.tokens_out
        return [buckets[k] for k in sorted(buckets)]

    async def top_spenders(self, limit: int = 10) -> list[ItemCost]:
        """Most expensive work items, cost descending."""
        totals: dict[str, ItemCost] = {}
        for run in await self._repo.query_runs():
            entry = totals.get(run.work_item_id)
            if entry is None:
                entry = totals[run.work_item_id] = ItemCost(
                    work_item_id=run.work_item_id, keyword=""
                )
            entry.cost_usd = round(entry.cost_usd + run.cost_usd, 6)
            entry.runs += 1

        ranked = sorted(totals.values(), key=lambda e: e.cost_usd, reverse=True)[:limit]
        for entry in ranked:
            item = await self._repo.get(entry.work_item_id)
            if item is not None:
                entry.keyword = item.keyword
                entry.title = item.title
        return ranked

    async def budget_alert(
        self, monthly_budget: float, now: datetime | None = None
    ) -> BudgetAlert:
        """Month-to-date spend against a monthly budget."""
        now = ensure_utc(now or utcnow())
        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        runs = await self._repo.query_runs(RunFilter(created_from=month_start, created_to=now))
        spend = round(sum(r.cost_usd for r in runs), 6)
        percent = round(spend / monthly_budget * 100, 2) if monthly_budget > 0 else 0.0
        if percent >= self._alert_pct:
            logger.warning("Budget alert: %.2f%% of %.2f USD used", percent, monthly_budget)
        return BudgetAlert(
            current_spend=spend,
            budget=monthly_budget,
            percent_used=percent,
            is_alert=percent >= self._alert_pct,
        )
