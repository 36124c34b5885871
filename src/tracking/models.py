# src/tracking/models.py - v1
"""Cost tracking types: pricing and ledger report shapes."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ModelPricing(BaseModel):
    """USD price per 1M tokens for one model."""

    model: str
    input_price_per_1m: float
    output_price_per_1m: float


class ModelCost(BaseModel):
    model: str
    runs: int = 0
    tokens_in: int = 0
    tokens_out: int = 0
    cost_usd: float = 0.0


class StepCost(BaseModel):
    step: str
    runs: int = 0
    cost_usd: float = 0.0
    avg_duration_ms: float = 0.0


class CostSummary(BaseModel):
    """Totals over the run ledger for a filter."""

    total_cost_usd: float = 0.0
    total_tokens_in: int = 0
    total_tokens_out: int = 0
    total_runs: int = 0
    successful_runs: int = 0
    failed_runs: int = 0
    avg_cost_per_item: float = 0.0
    by_model: list[ModelCost] = Field(default_factory=list)
    by_step: list[StepCost] = Field(default_factory=list)


class DailyCost(BaseModel):
    date: str  # YYYY-MM-DD
    cost_usd: float = 0.0
    runs: int = 0
    tokens_in: int = 0
    tokens_out: int = 0


class ItemCost(BaseModel):
    work_item_id: str
    keyword: str
    title: str | None = None
    cost_usd: float = 0.0
    runs: int = 0


class BudgetAlert(BaseModel):
    current_spend: float
    budget: float
    percent_used: float
    is_alert: bool
