# src/config/tasks.py - v1
"""Declarative LLM task routing and model catalogue.

Each completion task maps to a default provider, model and generation
parameters. Per-task env overrides (LLM_TASK_<TASK>) take precedence; see
llm/config.py for the resolution cascade.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TaskRoute:
    """Default routing for one completion task."""

    provider: str
    model: str
    max_tokens: int = 4096
    temperature: float = 0.7


TASK_ROUTING: dict[str, TaskRoute] = {
    "plan_article": TaskRoute("anthropic", "claude-sonnet-4-20250514", 4096, 0.7),
    "write_block": TaskRoute("anthropic", "claude-sonnet-4-20250514", 2048, 0.7),
    "generate_title": TaskRoute("google", "gemini-2.0-flash", 256, 0.8),
    "generate_meta": TaskRoute("google", "gemini-2.0-flash", 256, 0.5),
    "analyze_serp": TaskRoute("google", "gemini-2.0-flash", 2048, 0.3),
}

# Cross-provider fallback used once retries on the primary are exhausted.
FALLBACK_MODEL: dict[str, tuple[str, str]] = {
    "anthropic": ("google", "gemini-2.0-flash"),
    "google": ("anthropic", "claude-sonnet-4-20250514"),
    "openai": ("anthropic", "claude-sonnet-4-20250514"),
}


@dataclass(frozen=True)
class ModelInfo:
    """Catalogue entry for a selectable model."""

    id: str
    label: str
    provider: str
    model: str


AVAILABLE_MODELS: list[ModelInfo] = [
    ModelInfo("claude-sonnet", "Claude Sonnet 4", "anthropic", "claude-sonnet-4-20250514"),
    ModelInfo("claude-haiku", "Claude Haiku 3.5", "anthropic", "claude-3-5-haiku-20241022"),
    ModelInfo("gemini-flash", "Gemini 2.0 Flash", "google", "gemini-2.0-flash"),
    ModelInfo("gemini-pro", "Gemini 1.5 Pro", "google", "gemini-1.5-pro"),
    ModelInfo("gpt-4o", "GPT-4o", "openai", "gpt-4o"),
    ModelInfo("gpt-4o-mini", "GPT-4o mini", "openai", "gpt-4o-mini"),
]
