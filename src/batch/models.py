# src/batch/models.py - v1
"""Batch write result types."""

from __future__ import annotations

from pydantic import BaseModel, Field


class BlockWriteResult(BaseModel):
    """Outcome for one block of a write-all batch."""

    block_index: int
    block_id: str
    success: bool
    run_id: str | None = None
    error: str | None = None
    tokens_in: int = 0
    tokens_out: int = 0
    cost_usd: float = 0.0
    model_used: str | None = None


class BatchResult(BaseModel):
    """Aggregate of a sequential write over every pending block."""

    success: bool
    error: str | None = None
    total_blocks: int = 0
    pending_blocks: int = 0
    written_count: int = 0
    error_count: int = 0
    total_tokens_in: int = 0
    total_tokens_out: int = 0
    total_cost_usd: float = 0.0
    results: list[BlockWriteResult] = Field(default_factory=list)
