# src/pipeline/steps/refresh.py - v1
"""Re-run the search analysis for a published item before rewriting it."""

from __future__ import annotations

from contentflow.core.errors import StepFailure
from contentflow.core.models import StepName
from contentflow.pipeline.plugin_kit.base_step import BaseStep, StepContext
from contentflow.pipeline.plugin_kit.models import StepOutput
from contentflow.pipeline.steps.analyze import build_analysis


class RefreshStep(BaseStep):
    @property
    def name(self) -> StepName:
        return StepName.REFRESH

    @property
    def description(self) -> str:
        return "Refresh search analysis of a published article"

    async def execute(self, ctx: StepContext) -> StepOutput:
        search = ctx.services.search
        if search is None:
            raise StepFailure("No search service configured")

        previous = ctx.item.analysis
        analysis = build_analysis(await search.search(ctx.item.keyword))
        new_questions = sorted(
            set(analysis.questions) - set(previous.questions if previous else [])
        )
        return StepOutput(
            updates={"analysis": analysis},
            summary={
                "organic_results": len(analysis.organic),
                "new_questions": new_questions,
            },
        )
