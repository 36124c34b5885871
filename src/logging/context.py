# src/logging/context.py - v1
"""Contextual logging support: attach work_item_id, run_id, step to log records."""

from __future__ import annotations

import contextvars
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator

# Context variables for structured logging, set per step execution.
_work_item_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "work_item_id", default=None
)
_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "run_id", default=None
)
_step: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "step", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    work_item_id: str | None = None
    run_id: str | None = None
    step: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        work_item_id=_work_item_id.get(),
        run_id=_run_id.get(),
        step=_step.get(),
    )


@contextmanager
def step_context(work_item_id: str, step: str, run_id: str | None = None) -> Iterator[None]:
    """Bind work item, step and run id for the duration of one step execution."""
    tokens = (
        _work_item_id.set(work_item_id),
        _step.set(step),
        _run_id.set(run_id),
    )
    try:
        yield
    finally:
        _run_id.reset(tokens[2])
        _step.reset(tokens[1])
        _work_item_id.reset(tokens[0])


def set_run_id(run_id: str | None) -> None:
    """Attach the run id once it is known."""
    _run_id.set(run_id)


def clear_context() -> None:
    """Reset all context variables."""
    _work_item_id.set(None)
    _run_id.set(None)
    _step.set(None)
