# src/pipeline/registry.py - v1
"""Step registry: the closed dispatch table from StepName to handler.

The table is built from explicit handler classes and checked at import time
to cover every StepName exactly once, so adding a step without a handler
fails loudly instead of at dispatch time.
"""

from __future__ import annotations

import logging

from contentflow.core.models import StepName
from contentflow.pipeline.plugin_kit.base_step import BaseStep
from contentflow.pipeline.steps.analyze import AnalyzeStep
from contentflow.pipeline.steps.media import MediaStep
from contentflow.pipeline.steps.plan import PlanStep
from contentflow.pipeline.steps.publish import PublishStep
from contentflow.pipeline.steps.refresh import RefreshStep
from contentflow.pipeline.steps.seo_check import SeoCheckStep
from contentflow.pipeline.steps.write_block import WriteBlockStep

logger = logging.getLogger(__name__)

_HANDLER_CLASSES: tuple[type[BaseStep], ...] = (
    AnalyzeStep,
    PlanStep,
    WriteBlockStep,
    MediaStep,
    SeoCheckStep,
    PublishStep,
    RefreshStep,
)


class RegistryError(Exception):
    """Raised when the step table is incomplete or inconsistent."""


def build_step_table(
    classes: tuple[type[BaseStep], ...] = _HANDLER_CLASSES,
) -> dict[StepName, BaseStep]:
    """Instantiate handlers and verify the table is exhaustive.

    Raises:
        RegistryError: On a duplicate or missing step.
    """
    table: dict[StepName, BaseStep] = {}
    for cls in classes:
        handler = cls()
        if handler.name in table:
            raise RegistryError(f"Duplicate handler for step '{handler.name.value}'")
        table[handler.name] = handler

    missing = set(StepName) - set(table)
    if missing:
        names = ", ".join(sorted(s.value for s in missing))
        raise RegistryError(f"No handler registered for steps: {names}")
    return table


STEP_HANDLERS: dict[StepName, BaseStep] = build_step_table()


def get_handler(step: StepName) -> BaseStep:
    """Handler for a step. Total over StepName."""
    return STEP_HANDLERS[StepName(step)]
