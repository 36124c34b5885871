# src/pipeline/models.py - v1
"""Orchestrator request/response types."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from contentflow.core.models import WorkItemStatus


class StepOptions(BaseModel):
    """Caller options for one step execution."""

    block_index: int | None = None
    model_override: str | None = None


class StepResult(BaseModel):
    """Outcome of execute_step. Domain failures are reported here, not raised."""

    success: bool
    run_id: str | None = None
    error: str | None = None
    tokens_in: int = 0
    tokens_out: int = 0
    cost_usd: float = 0.0
    duration_ms: int = 0
    model_used: str | None = None
    status: WorkItemStatus | None = None
    output: dict[str, Any] = Field(default_factory=dict)


class RollbackResult(BaseModel):
    success: bool
    from_status: WorkItemStatus | None = None
    to_status: WorkItemStatus | None = None
    label: str | None = None
    error: str | None = None
