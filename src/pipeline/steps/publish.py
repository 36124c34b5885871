# src/pipeline/steps/publish.py - v1
"""Push the assembled article to the publishing target.

From reviewing the post is created (or updated) as a draft; from publishing
it is set live and published_at is recorded.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from contentflow.core.errors import StepFailure
from contentflow.core.models import StepName, WorkItem, WorkItemStatus, utcnow
from contentflow.core.text import first_paragraph_text, slugify
from contentflow.pipeline.plugin_kit.base_step import BaseStep, StepContext
from contentflow.pipeline.plugin_kit.models import StepOutput
from contentflow.publishing.models import ContentPayload

logger = logging.getLogger(__name__)


def assemble_html(item: WorkItem) -> str:
    """Headings + block content + JSON-LD script tags."""
    parts: list[str] = []
    for block in item.blocks:
        if block.heading:
            tag = "h3" if block.type == "h3" else "h2"
            parts.append(f"<{tag}>{block.heading}</{tag}>")
        if block.content_html:
            parts.append(block.content_html)
    for schema in item.json_ld:
        parts.append(
            '<script type="application/ld+json">'
            + json.dumps(schema, ensure_ascii=False)
            + "</script>"
        )
    return "\n".join(parts)


def extract_excerpt(item: WorkItem) -> str | None:
    """First written block without a heading (the intro)."""
    for block in item.blocks:
        if not block.heading and block.content_html:
            return first_paragraph_text(block.content_html) or None
    return None


class PublishStep(BaseStep):
    """Create or update the external post."""

    needs_target = True

    @property
    def name(self) -> StepName:
        return StepName.PUBLISH

    @property
    def description(self) -> str:
        return "Publish to the target site (draft, then live)"

    async def execute(self, ctx: StepContext) -> StepOutput:
        item = ctx.item
        publisher = ctx.services.publisher
        if publisher is None:
            raise StepFailure("No publishing service configured")

        go_live = item.status == WorkItemStatus.PUBLISHING
        slug = item.slug or slugify(item.title or item.keyword)
        payload = ContentPayload(
            title=item.title or item.keyword,
            content_html=assemble_html(item),
            slug=slug,
            excerpt=extract_excerpt(item),
            # A post that was live once stays live while it is being updated.
            status="publish" if go_live or item.published_at else "draft",
            external_id=item.external_id,
            featured_media=item.hero_asset.asset_id if item.hero_asset else None,
            meta={
                "description": item.meta_description or "",
                "focus_keyword": item.keyword,
            },
        )
        published = await publisher.create_or_update_content(ctx.target, payload)

        updates: dict[str, Any] = {
            "external_id": published.external_id,
            "external_url": published.external_url,
            "slug": slug,
        }
        if go_live:
            updates["published_at"] = utcnow()

        return StepOutput(
            updates=updates,
            summary={
                "external_id": published.external_id,
                "external_url": published.external_url,
                "remote_status": payload.status,
            },
        )
