# tests/integration/tracking/test_int_budget.py - v1
"""Budget alert and cost reports through the facade."""

from __future__ import annotations

import pytest

from contentflow.api.facade import build_facade
from contentflow.core.models import RunRecord, StepName, WorkItem
from contentflow.tracking.models import CostSummary


class TestBudget:
    @pytest.mark.asyncio
    async def test_month_spend_over_threshold(self, settings, repository, services):
        facade = build_facade(settings, repository, services)
        item = await repository.create(WorkItem(keyword="jardin potager"))
        await repository.append_run(RunRecord(
            work_item_id=item.id, step=StepName.WRITE_BLOCK, status="success",
            model_used="claude-sonnet-4-20250514", cost_usd=41.0,
        ))

        alert = await facade.budget_alert()
        assert alert.budget == 50.0
        assert alert.current_spend == 41.0
        assert alert.percent_used == 82.0
        assert alert.is_alert is True

        relaxed = await facade.budget_alert(100.0)
        assert relaxed.percent_used == 41.0
        assert relaxed.is_alert is False

        [day] = await facade.daily_costs(7)
        assert day.cost_usd == 41.0
        [top] = await facade.top_spenders(5)
        assert top.work_item_id == item.id

    @pytest.mark.asyncio
    async def test_costs_follow_the_ledger(self, settings, repository, services, stored_target):
        facade = build_facade(settings, repository, services)
        item = await facade.create_work_item("jardin potager", target_id=stored_target.id)
        await facade.trigger_step(item.id, StepName.ANALYZE)
        await facade.trigger_step(item.id, StepName.PLAN)
        await facade.write_all(item.id)

        summary = await facade.cost_summary(owner_id=stored_target.id)
        assert summary.total_runs == 7
        assert summary.total_cost_usd == pytest.approx(6 * 0.00105)
        steps = {s.step: s for s in summary.by_step}
        assert steps["write_block"].runs == 5
        assert await facade.cost_summary(owner_id="elsewhere") == CostSummary()
