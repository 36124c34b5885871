# src/pipeline/steps/plan.py - v1
"""Article outline generation.

One completion call (plan_article). The JSON answer becomes the block list,
title suggestions and meta description. Every block starts pending.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from contentflow.core.errors import StepFailure
from contentflow.core.models import Block, StepName, TitleSuggestion, WorkItem
from contentflow.core.text import fix_year, slugify
from contentflow.llm.models import Message
from contentflow.pipeline.plugin_kit.base_step import (
    BaseStep,
    StepContext,
    load_prompt,
    parse_json_response,
)
from contentflow.pipeline.plugin_kit.models import StepOutput, StepUsage

logger = logging.getLogger(__name__)

_BLOCK_TYPES = {"h2", "h3", "paragraph", "list", "faq", "callout", "image"}
_SYSTEM = "You are an SEO content architect. Respond only with valid JSON."


def persona_line(item: WorkItem) -> str:
    if item.persona is None:
        return "neutral expert"
    p = item.persona
    return ", ".join(part for part in (p.name, p.tone, p.expertise, p.writing_style) if part)


def _format_prompt(item: WorkItem) -> str:
    analysis = item.analysis
    serp = "(no search data)"
    questions = "(none)"
    if analysis is not None:
        serp = "\n".join(f"- {r.title}: {r.snippet}" for r in analysis.organic[:10]) or serp
        questions = "\n".join(f"- {q}" for q in analysis.questions) or questions
    return load_prompt("plan_article").format(
        keyword=item.keyword,
        serp_summary=serp,
        questions=questions,
        persona=persona_line(item),
    )


def intro_block(keyword: str) -> Block:
    return Block(
        type="paragraph",
        heading=None,
        writing_directive=(
            f'Short introduction (100-140 words) containing the keyword "{keyword}". '
            "Confirm the reader is in the right place and say what they will learn."
        ),
        format_hint="prose",
    )


def build_blocks(raw_blocks: list[dict[str, Any]], keyword: str) -> list[Block]:
    """Normalize model blocks, fix stale years and prepend an intro if missing."""
    blocks: list[Block] = []
    for raw in raw_blocks:
        if not isinstance(raw, dict):
            continue
        block_type = raw.get("type") if raw.get("type") in _BLOCK_TYPES else "paragraph"
        heading = raw.get("heading") or None
        blocks.append(
            Block(
                type=block_type,
                heading=fix_year(heading) if heading else None,
                writing_directive=raw.get("writing_directive") or "",
                format_hint=raw.get("format_hint") or "prose",
                generate_image=bool(raw.get("generate_image", False)),
                image_prompt=raw.get("image_prompt") or None,
            )
        )

    first = blocks[0] if blocks else None
    if first is None or first.type != "paragraph" or first.heading:
        blocks.insert(0, intro_block(keyword))
    return blocks


def build_suggestions(raw_suggestions: list[dict[str, Any]]) -> list[TitleSuggestion]:
    return [
        TitleSuggestion(
            title=fix_year(s["title"]),
            seo_title=fix_year(s.get("seo_title") or s["title"]),
            selected=False,
        )
        for s in raw_suggestions
        if isinstance(s, dict) and s.get("title")
    ]


class PlanStep(BaseStep):
    """Generate the article outline."""

    @property
    def name(self) -> StepName:
        return StepName.PLAN

    @property
    def description(self) -> str:
        return "Outline, title suggestions and meta description"

    async def execute(self, ctx: StepContext) -> StepOutput:
        item = ctx.item
        response = await ctx.services.completion.complete(
            "plan_article",
            [Message(role="user", content=_format_prompt(item))],
            system=_SYSTEM,
            model_override=ctx.options.model_override,
        )
        usage = StepUsage()
        usage.add(response.tokens_in, response.tokens_out, response.cost_usd, response.model_used)

        try:
            plan = parse_json_response(response.content)
            if not isinstance(plan, dict):
                raise ValueError("plan is not a JSON object")
            # pydantic ValidationError is a ValueError: a malformed block lands here too.
            blocks = build_blocks(plan.get("content_blocks") or [], item.keyword)
            suggestions = build_suggestions(plan.get("title_suggestions") or [])
            meta = fix_year(str(plan.get("meta_description") or "")) or None
        except (json.JSONDecodeError, ValueError, TypeError) as exc:
            logger.warning("Plan JSON parse failed for %s: %s", item.id, exc)
            raise StepFailure(
                "Could not parse the generated plan",
                tokens_in=usage.tokens_in,
                tokens_out=usage.tokens_out,
                cost_usd=usage.cost_usd,
                model_used=usage.model_used,
            ) from exc

        updates: dict[str, Any] = {
            "blocks": blocks,
            "title_suggestions": suggestions,
            "meta_description": meta,
            "word_count": 0,
        }
        if item.title is None and suggestions:
            updates["title"] = suggestions[0].title
        if item.slug is None:
            updates["slug"] = slugify(updates.get("title") or item.title or item.keyword)

        return StepOutput(
            updates=updates,
            usage=usage,
            summary={"blocks": len(blocks), "title_suggestions": len(suggestions)},
        )
