# src/pipeline/plugin_kit/models.py - v1
"""Step handler contract types: StepUsage, StepOutput."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class StepUsage(BaseModel):
    """Language-model usage accumulated by one handler invocation."""

    tokens_in: int = 0
    tokens_out: int = 0
    cost_usd: float = 0.0
    model_used: str | None = None

    def add(self, tokens_in: int, tokens_out: int, cost_usd: float, model: str | None) -> None:
        self.tokens_in += tokens_in
        self.tokens_out += tokens_out
        self.cost_usd = round(self.cost_usd + cost_usd, 6)
        if model:
            self.model_used = model


class StepOutput(BaseModel):
    """Standard return type for all BaseStep.execute() calls.

    updates holds WorkItem field values to persist; status is never among them,
    the orchestrator owns the status transition.
    """

    updates: dict[str, Any] = Field(default_factory=dict)
    usage: StepUsage = Field(default_factory=StepUsage)
    summary: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
