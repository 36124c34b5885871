# src/api/routes.py - v1
"""HTTP routes over the ContentFlow facade.

The facade lives on app.state.contentflow. NotFoundError maps to 404,
domain failures to 422 with the failed result as detail.
"""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, FastAPI, HTTPException, Query, Request

from contentflow.api.facade import ContentFlow
from contentflow.api.models import (
    CreateWorkItemRequest,
    StepRequest,
    WorkItemView,
    WriteAllRequest,
)
from contentflow.batch.models import BatchResult
from contentflow.core.errors import IllegalTransitionError, NotFoundError
from contentflow.core.models import RunRecord, StepName, WorkItem
from contentflow.pipeline.models import RollbackResult, StepResult
from contentflow.tracking.models import BudgetAlert, CostSummary, DailyCost, ItemCost

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Workflow"])
costs_router = APIRouter(prefix="/costs", tags=["Costs"])


def _facade(request: Request) -> ContentFlow:
    return request.app.state.contentflow


def _not_found(exc: NotFoundError) -> HTTPException:
    return HTTPException(status_code=404, detail=str(exc))


@router.post("/work-items", status_code=201)
async def create_work_item(body: CreateWorkItemRequest, request: Request) -> WorkItemView:
    item = await _facade(request).create_work_item(
        body.keyword, body.title, body.target_id, body.persona
    )
    return WorkItemView.of(item)


@router.get("/work-items/{work_item_id}")
async def get_work_item(work_item_id: str, request: Request) -> WorkItemView:
    try:
        item = await _facade(request).get_work_item(work_item_id)
    except NotFoundError as exc:
        raise _not_found(exc) from exc
    return WorkItemView.of(item)


@router.post("/work-items/{work_item_id}/steps/{step}")
async def trigger_step(
    work_item_id: str,
    step: StepName,
    request: Request,
    body: StepRequest | None = None,
) -> StepResult:
    """Execute one step.

    Raises:
        HTTPException: 404 if the item or block is missing, 422 on a domain failure.
    """
    body = body or StepRequest()
    try:
        result = await _facade(request).trigger_step(
            work_item_id, step, body.block_index, body.model
        )
    except NotFoundError as exc:
        raise _not_found(exc) from exc
    if not result.success:
        raise HTTPException(status_code=422, detail=result.model_dump(mode="json"))
    return result


@router.post("/work-items/{work_item_id}/write-all")
async def write_all(
    work_item_id: str,
    request: Request,
    body: WriteAllRequest | None = None,
) -> BatchResult:
    """Write every pending block; per-block failures stay in the 200 body."""
    body = body or WriteAllRequest()
    try:
        result = await _facade(request).write_all(work_item_id, body.model)
    except NotFoundError as exc:
        raise _not_found(exc) from exc
    if not result.success:
        raise HTTPException(status_code=422, detail=result.model_dump(mode="json"))
    return result


@router.post("/work-items/{work_item_id}/rollback")
async def rollback(work_item_id: str, request: Request) -> RollbackResult:
    try:
        result = await _facade(request).rollback(work_item_id)
    except NotFoundError as exc:
        raise _not_found(exc) from exc
    if not result.success:
        raise HTTPException(status_code=422, detail=result.model_dump(mode="json"))
    return result


@router.post("/work-items/{work_item_id}/refresh-needed")
async def mark_refresh_needed(work_item_id: str, request: Request) -> WorkItemView:
    try:
        item = await _facade(request).mark_refresh_needed(work_item_id)
    except NotFoundError as exc:
        raise _not_found(exc) from exc
    except IllegalTransitionError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return WorkItemView.of(item)


@router.get("/work-items/{work_item_id}/runs")
async def run_history(work_item_id: str, request: Request) -> list[RunRecord]:
    try:
        return await _facade(request).run_history(work_item_id)
    except NotFoundError as exc:
        raise _not_found(exc) from exc


@router.get("/refresh-candidates")
async def refresh_candidates(
    request: Request,
    target_id: str | None = None,
    older_than_days: int | None = Query(default=None, ge=1),
) -> list[WorkItem]:
    return await _facade(request).refresh_candidates(target_id, older_than_days)


@costs_router.get("/summary")
async def cost_summary(
    request: Request,
    owner_id: str | None = None,
    from_date: datetime | None = None,
    to_date: datetime | None = None,
) -> CostSummary:
    return await _facade(request).cost_summary(owner_id, from_date, to_date)


@costs_router.get("/daily")
async def daily_costs(request: Request, days: int = Query(default=30, ge=1, le=366)) -> list[DailyCost]:
    return await _facade(request).daily_costs(days)


@costs_router.get("/top")
async def top_spenders(request: Request, limit: int = Query(default=10, ge=1, le=100)) -> list[ItemCost]:
    return await _facade(request).top_spenders(limit)


@costs_router.get("/budget")
async def budget_alert(request: Request, budget: float | None = None) -> BudgetAlert:
    return await _facade(request).budget_alert(budget)


def create_app(facade: ContentFlow) -> FastAPI:
    """Create the FastAPI application around a facade."""
    app = FastAPI(title="contentflow", version="0.1.0")
    app.state.contentflow = facade
    app.include_router(router)
    app.include_router(costs_router)
    return app
