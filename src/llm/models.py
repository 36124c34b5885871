# src/llm/models.py - v1
"""LLM-specific types: Message, LLMResponse, CompletionResult."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel


class Message(BaseModel):
    """Single message in a conversation."""

    role: Literal["user", "assistant", "system"]
    content: str


class LLMResponse(BaseModel):
    """Normalized response from any LLM provider."""

    content: str
    input_tokens: int
    output_tokens: int
    model: str
    provider: str
    latency_ms: int
    raw_response: Any = None


class CompletionResult(BaseModel):
    """Outcome of a routed completion, as consumed by step handlers."""

    content: str
    tokens_in: int = 0
    tokens_out: int = 0
    duration_ms: int = 0
    model_used: str
    provider: str
    cost_usd: float = 0.0
    fallback_used: bool = False
