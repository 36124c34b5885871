# src/llm/config.py - v1
"""Per-task LLM routing with cascade resolution.

Resolution order:
  1. Explicit model override (catalogue id, "provider:model" or bare model)
  2. Per-task env var (LLM_TASK_WRITE_BLOCK=openai:gpt-4o)
  3. Task routing table (config/tasks.py)
  4. Default provider + model (LLM_DEFAULT_PROVIDER + LLM_DEFAULT_MODEL)
"""

from __future__ import annotations

from dataclasses import dataclass

from contentflow.config.settings import Settings
from contentflow.config.tasks import AVAILABLE_MODELS, FALLBACK_MODEL, TASK_ROUTING


@dataclass(frozen=True)
class LLMAssignment:
    """Resolved LLM provider:model and generation parameters for a task."""

    provider: str
    model: str
    source: str  # "override", "task_env", "routing", or "default"
    max_tokens: int = 4096
    temperature: float = 0.7

    @property
    def key(self) -> str:
        """Return 'provider:model' string."""
        return f"{self.provider}:{self.model}"


def _parse_assignment(value: str) -> tuple[str, str] | None:
    """Parse 'provider:model' string. Returns None if empty."""
    if not value or ":" not in value:
        return None
    provider, model = value.split(":", 1)
    return (provider.strip(), model.strip())


def _infer_provider(model: str) -> str | None:
    if model.startswith("claude"):
        return "anthropic"
    if model.startswith("gemini"):
        return "google"
    if model.startswith(("gpt", "o1", "o3", "o4")):
        return "openai"
    return None


def parse_model_override(value: str) -> tuple[str, str] | None:
    """Turn a user-facing model choice into (provider, model).

    Accepts a catalogue id ("claude-sonnet"), "provider:model", or a bare
    model name whose provider can be inferred from its prefix.
    """
    if not value:
        return None
    for info in AVAILABLE_MODELS:
        if info.id == value:
            return (info.provider, info.model)
    parsed = _parse_assignment(value)
    if parsed:
        return parsed
    provider = _infer_provider(value)
    if provider:
        return (provider, value)
    return None


def resolve_llm(
    task: str, settings: Settings, model_override: str | None = None
) -> LLMAssignment:
    """Resolve LLM assignment for a task.

    Args:
        task: Task name (e.g. "plan_article", "write_block").
        settings: Application settings.
        model_override: Optional caller-supplied model choice.

    Returns:
        Resolved LLMAssignment with provider, model, and resolution source.

    Raises:
        ValueError: If model_override cannot be mapped to a provider.
    """
    route = TASK_ROUTING.get(task)
    max_tokens = route.max_tokens if route else settings.llm_default_max_tokens
    temperature = route.temperature if route else settings.llm_default_temperature

    if model_override:
        parsed = parse_model_override(model_override)
        if parsed is None:
            raise ValueError(f"Unknown model override: {model_override!r}")
        return LLMAssignment(parsed[0], parsed[1], "override", max_tokens, temperature)

    parsed = _parse_assignment(getattr(settings, f"llm_task_{task}", ""))
    if parsed:
        return LLMAssignment(parsed[0], parsed[1], "task_env", max_tokens, temperature)

    if route:
        return LLMAssignment(route.provider, route.model, "routing", max_tokens, temperature)

    return LLMAssignment(
        provider=settings.llm_default_provider,
        model=settings.llm_default_model,
        source="default",
        max_tokens=max_tokens,
        temperature=temperature,
    )


def fallback_for(assignment: LLMAssignment) -> LLMAssignment | None:
    """Return the cross-provider fallback for an assignment, if any."""
    target = FALLBACK_MODEL.get(assignment.provider)
    if target is None:
        return None
    return LLMAssignment(
        provider=target[0],
        model=target[1],
        source="fallback",
        max_tokens=assignment.max_tokens,
        temperature=assignment.temperature,
    )
