# src/pipeline/steps/seo_check.py - v1
"""SEO verification.

Builds JSON-LD (Article, FAQPage from <details>/<summary> pairs,
BreadcrumbList) and checks the meta description length. An out-of-range
meta description is repaired with one generate_meta completion call.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from contentflow.core.models import PublishTarget, SeoReport, StepName, WorkItem
from contentflow.core.text import strip_tags
from contentflow.llm.models import Message
from contentflow.pipeline.plugin_kit.base_step import BaseStep, StepContext, load_prompt
from contentflow.pipeline.plugin_kit.models import StepOutput, StepUsage

logger = logging.getLogger(__name__)

_DETAILS_RE = re.compile(
    r"<details[^>]*>\s*<summary[^>]*>(.*?)</summary>(.*?)</details>",
    re.IGNORECASE | re.DOTALL,
)


def extract_faq(item: WorkItem) -> list[tuple[str, str]]:
    """(question, answer) pairs from every block's <details> elements."""
    pairs: list[tuple[str, str]] = []
    for block in item.blocks:
        for question, answer in _DETAILS_RE.findall(block.content_html):
            q, a = strip_tags(question), strip_tags(answer)
            if q and a:
                pairs.append((q, a))
    return pairs


def build_json_ld(item: WorkItem, target: PublishTarget | None) -> list[dict[str, Any]]:
    base_url = target.base_url.rstrip("/") if target else ""
    article_url = item.external_url or (f"{base_url}/{item.slug}" if item.slug else base_url)
    headline = item.title or item.keyword

    article: dict[str, Any] = {
        "@context": "https://schema.org",
        "@type": "Article",
        "headline": headline,
        "description": item.meta_description or "",
        "wordCount": item.word_count,
        "dateModified": item.updated_at.isoformat(),
    }
    if item.persona is not None:
        article["author"] = {"@type": "Person", "name": item.persona.name}
    if item.hero_asset is not None:
        article["image"] = item.hero_asset.url
    schemas = [article]

    faq = extract_faq(item)
    if faq:
        schemas.append({
            "@context": "https://schema.org",
            "@type": "FAQPage",
            "mainEntity": [
                {
                    "@type": "Question",
                    "name": q,
                    "acceptedAnswer": {"@type": "Answer", "text": a},
                }
                for q, a in faq
            ],
        })

    schemas.append({
        "@context": "https://schema.org",
        "@type": "BreadcrumbList",
        "itemListElement": [
            {"@type": "ListItem", "position": 1, "name": target.name if target else "Home",
             "item": base_url or None},
            {"@type": "ListItem", "position": 2, "name": headline, "item": article_url or None},
        ],
    })
    return schemas


class SeoCheckStep(BaseStep):
    """Structured data and meta description checks."""

    @property
    def name(self) -> StepName:
        return StepName.SEO_CHECK

    @property
    def description(self) -> str:
        return "JSON-LD generation and meta description validation"

    async def _regenerate_meta(self, ctx: StepContext, usage: StepUsage) -> str:
        item = ctx.item
        current = item.meta_description or ""
        prompt = load_prompt("generate_meta").format(
            keyword=item.keyword,
            title=item.title or item.keyword,
            min_len=ctx.settings.meta_description_min,
            max_len=ctx.settings.meta_description_max,
            current_len=len(current),
            current=current or "(empty)",
        )
        response = await ctx.services.completion.complete(
            "generate_meta",
            [Message(role="user", content=prompt)],
            model_override=ctx.options.model_override,
        )
        usage.add(response.tokens_in, response.tokens_out, response.cost_usd, response.model_used)
        return response.content.strip().strip('"').strip()

    async def execute(self, ctx: StepContext) -> StepOutput:
        item = ctx.item
        lo, hi = ctx.settings.meta_description_min, ctx.settings.meta_description_max
        usage = StepUsage()
        updates: dict[str, Any] = {}

        meta = item.meta_description or ""
        regenerated = False
        if not lo <= len(meta) <= hi:
            meta = await self._regenerate_meta(ctx, usage)
            regenerated = True
            updates["meta_description"] = meta
            if not lo <= len(meta) <= hi:
                logger.warning("Regenerated meta description still %d chars", len(meta))

        checked = item.model_copy(update={"meta_description": meta})
        json_ld = build_json_ld(checked, ctx.target)
        report = SeoReport(
            meta_description_length=len(meta),
            meta_description_ok=lo <= len(meta) <= hi,
            meta_regenerated=regenerated,
            faq_count=len(extract_faq(item)),
            word_count=item.word_count,
            schema_types=[s["@type"] for s in json_ld],
        )
        updates["json_ld"] = json_ld
        updates["seo_report"] = report

        return StepOutput(
            updates=updates,
            usage=usage,
            summary=report.model_dump(),
        )
